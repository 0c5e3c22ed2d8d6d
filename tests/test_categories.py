from conftest import auth
from vecinity.models.category import Category
from vecinity.models.report import Report


def category_payload(**overrides):
    data = {
        "nombre": "Basura",
        "descripcion": "Recolección y tiraderos",
        "color": "#10B981",
        "icono": "trash",
        "orden": 2,
        "subcategorias": [{"nombre": "Recoleccion", "descripcion": "Camión no pasó"}],
    }
    data.update(overrides)
    return data


def test_list_is_public_and_ordered(client, db, category, superadmin):
    db.add(Category(nombre="alumbrado", descripcion="Luminarias", orden=0, subcategorias=[], created_by=superadmin.id))
    db.add(Category(nombre="inactiva", descripcion="Oculta", orden=0, subcategorias=[], is_active=False,
                    created_by=superadmin.id))
    db.commit()
    r = client.get("/categories")
    assert r.status_code == 200
    body = r.json()
    assert [c["nombre"] for c in body["data"]] == ["alumbrado", "infraestructura"]
    assert body["count"] == 2


def test_get_category(client, category):
    r = client.get(f"/categories/{category.id}")
    assert r.json()["data"]["subcategorias"][0]["nombre"] == "calles"
    assert client.get("/categories/999").status_code == 404


def test_create_requires_manager(client, user, operativo):
    assert client.post("/categories", json=category_payload()).status_code == 401
    assert client.post("/categories", json=category_payload(), headers=auth(user)).status_code == 403
    assert client.post("/categories", json=category_payload(), headers=auth(operativo)).status_code == 403


def test_create_lowercases_names(client, general):
    r = client.post("/categories", json=category_payload(), headers=auth(general))
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["nombre"] == "basura"
    assert data["subcategorias"] == [
        {"nombre": "recoleccion", "descripcion": "Camión no pasó", "icono": "default-sub-icon"}
    ]
    assert data["created_by"] == general.id


def test_create_duplicate_name_conflicts(client, general, category):
    r = client.post("/categories", json=category_payload(nombre="INFRAESTRUCTURA"), headers=auth(general))
    assert r.status_code == 409


def test_create_rejects_duplicate_subcategories(client, general):
    subs = [{"nombre": "Poda"}, {"nombre": "poda"}]
    r = client.post("/categories", json=category_payload(subcategorias=subs), headers=auth(general))
    assert r.status_code == 409


def test_create_validates_color(client, general):
    r = client.post("/categories", json=category_payload(color="green"), headers=auth(general))
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "color"


def test_update_category(client, general, category):
    r = client.put(f"/categories/{category.id}", json={"color": "#000000", "orden": 5}, headers=auth(general))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["color"] == "#000000"
    assert data["orden"] == 5
    assert data["updated_by"] == general.id


def test_update_rejects_unknown_fields(client, general, category):
    r = client.put(f"/categories/{category.id}", json={"created_by": 1}, headers=auth(general))
    assert r.status_code == 400


def test_update_cannot_drop_used_subcategory(client, general, user, category, make_report):
    make_report(user, subcategoria="calles")
    r = client.put(
        f"/categories/{category.id}",
        json={"subcategorias": [{"nombre": "alumbrado"}]},
        headers=auth(general),
    )
    assert r.status_code == 409


def test_delete_with_reports_conflicts(client, db, general, user, category, make_report):
    report = make_report(user)
    r = client.delete(f"/categories/{category.id}", headers=auth(general))
    assert r.status_code == 409
    assert "1 associated reports" in r.json()["message"]
    db.expire_all()
    assert db.get(Category, category.id) is not None
    assert db.get(Report, report.id).categoria_id == category.id


def test_delete_unused_category(client, db, general, category):
    category_id = category.id
    r = client.delete(f"/categories/{category_id}", headers=auth(general))
    assert r.status_code == 200
    db.expire_all()
    assert db.get(Category, category_id) is None


def test_add_subcategory(client, general, category):
    url = f"/categories/{category.id}/subcategories"
    r = client.post(url, json={"nombre": "Banquetas", "descripcion": "Banquetas rotas"}, headers=auth(general))
    assert r.status_code == 200
    names = [s["nombre"] for s in r.json()["data"]["subcategorias"]]
    assert names == ["calles", "alumbrado", "banquetas"]

    assert client.post(url, json={"nombre": "CALLES"}, headers=auth(general)).status_code == 409


def test_add_subcategory_named_in_path(client, general, category):
    r = client.post(f"/categories/{category.id}/subcategories/Semaforos", headers=auth(general))
    assert r.status_code == 200
    added = r.json()["data"]["subcategorias"][-1]
    assert added == {"nombre": "semaforos", "descripcion": "", "icono": "default-sub-icon"}

    r = client.post(f"/categories/{category.id}/subcategories/puentes",
                    json={"descripcion": "Puentes peatonales", "icono": "bridge"}, headers=auth(general))
    assert r.json()["data"]["subcategorias"][-1]["icono"] == "bridge"


def test_remove_subcategory(client, general, user, category, make_report):
    make_report(user, subcategoria="calles")
    base = f"/categories/{category.id}/subcategories"
    assert client.delete(f"{base}/calles", headers=auth(general)).status_code == 409
    assert client.delete(f"{base}/inexistente", headers=auth(general)).status_code == 404

    r = client.delete(f"{base}/Alumbrado", headers=auth(general))
    assert r.status_code == 200
    assert [s["nombre"] for s in r.json()["data"]["subcategorias"]] == ["calles"]


def test_stats_counts_reports(client, db, user, category, superadmin, make_report):
    db.add(Category(nombre="basura", descripcion="Recolección", orden=2, subcategorias=[], created_by=superadmin.id))
    db.commit()
    make_report(user)
    make_report(user)
    data = client.get("/categories/stats").json()["data"]
    totals = {c["nombre"]: c["total_reports"] for c in data}
    assert totals == {"infraestructura": 2, "basura": 0}
