from conftest import auth
from vecinity.models.report import Report
from vecinity.models.user import User, UserRole


def test_dashboard_requires_admin(client, user):
    assert client.get("/admin/dashboard").status_code == 401
    assert client.get("/admin/dashboard", headers=auth(user)).status_code == 403


def test_dashboard_summary(client, user, operativo, category, make_report):
    make_report(user)
    make_report(user, is_publico=False)
    r = client.get("/admin/dashboard", headers=auth(operativo))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["reportes"]["total"] == 2
    assert data["reportes"]["recientes"] == 2
    assert data["reportes"]["por_estatus"]["nuevo"] == 2
    # user, operativo and the superadmin who created the category
    assert data["usuarios"]["total"] == 3
    assert data["usuarios"]["por_rol"] == {"usuario": 1, "admin_operativo": 1, "admin_general": 0, "superadmin": 1}
    assert data["categorias"]["total"] == 1
    assert len(data["reportes_recientes"]) == 2
    assert len(data["usuarios_recientes"]) == 3


def test_moderate_reject_with_reason(client, user, operativo, make_report):
    report = make_report(user)
    r = client.put(f"/admin/reports/{report.id}/moderate",
                   json={"accion": "rechazar", "razon": "Contenido ofensivo"}, headers=auth(operativo))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["is_publico"] is False
    assert data["is_moderado"] is True
    assert data["moderado_por"] == operativo.id
    assert data["moderador"] == {"id": operativo.id, "nombre": operativo.nombre}
    assert data["motivo_moderacion"] == "Contenido ofensivo"
    assert data["fecha_moderacion"]
    assert data["comentarios"][-1]["contenido"] == "[MODERACIÓN] Contenido ofensivo"
    assert data["comentarios"][-1]["usuario_id"] == operativo.id


def test_moderate_approve_without_reason_adds_no_comment(client, user, operativo, make_report):
    report = make_report(user, is_publico=False)
    r = client.put(f"/admin/reports/{report.id}/moderate", json={"accion": "aprobar"}, headers=auth(operativo))
    data = r.json()["data"]
    assert data["is_publico"] is True
    assert data["comentarios"] == []
    assert data["moderador"]["id"] == operativo.id


def test_moderate_edit_applies_changes(client, user, operativo, make_report):
    report = make_report(user)
    r = client.put(
        f"/admin/reports/{report.id}/moderate",
        json={"accion": "editar", "cambios": {"titulo": "Título corregido", "prioridad": "urgente"}},
        headers=auth(operativo),
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["titulo"] == "Título corregido"
    assert data["prioridad"] == "urgente"
    assert data["is_moderado"] is True


def test_moderate_edit_revalidates(client, user, operativo, make_report):
    report = make_report(user)
    url = f"/admin/reports/{report.id}/moderate"
    r = client.put(url, json={"accion": "editar", "cambios": {"titulo": "x"}}, headers=auth(operativo))
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "titulo"

    r = client.put(url, json={"accion": "editar", "cambios": {"usuario_id": 99}}, headers=auth(operativo))
    assert r.status_code == 400

    r = client.put(url, json={"accion": "editar"}, headers=auth(operativo))
    assert r.status_code == 400


def test_moderate_edit_to_unknown_category(client, user, operativo, make_report):
    report = make_report(user)
    r = client.put(f"/admin/reports/{report.id}/moderate",
                   json={"accion": "editar", "cambios": {"categoria_id": 999}}, headers=auth(operativo))
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "categoria_id"


def test_moderate_delete(client, db, user, operativo, make_report):
    report = make_report(user)
    report_id = report.id
    r = client.put(f"/admin/reports/{report_id}/moderate", json={"accion": "eliminar"}, headers=auth(operativo))
    assert r.status_code == 200
    assert "data" not in r.json()
    db.expire_all()
    assert db.get(Report, report_id) is None


def test_moderate_unknown_action(client, user, operativo, make_report):
    report = make_report(user)
    r = client.put(f"/admin/reports/{report.id}/moderate", json={"accion": "ocultar"}, headers=auth(operativo))
    assert r.status_code == 400


def test_moderate_forbidden_for_citizens(client, user, make_report):
    report = make_report(user)
    r = client.put(f"/admin/reports/{report.id}/moderate", json={"accion": "aprobar"}, headers=auth(user))
    assert r.status_code == 403


def test_assign_report(client, user, operativo, general, make_report):
    report = make_report(user)
    url = f"/admin/reports/{report.id}/assign"
    r = client.put(url, json={"asignado_a": operativo.id}, headers=auth(general))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["asignado_a"] == operativo.id
    assert data["asignado"] == {"id": operativo.id, "nombre": operativo.nombre}

    assert client.put(url, json={"asignado_a": user.id}, headers=auth(general)).status_code == 400
    assert client.put(url, json={"asignado_a": 999}, headers=auth(general)).status_code == 404


def test_assign_to_inactive_admin_rejected(client, user, general, make_user, make_report):
    inactive = make_user(UserRole.admin_operativo, is_active=False)
    report = make_report(user)
    r = client.put(f"/admin/reports/{report.id}/assign", json={"asignado_a": inactive.id}, headers=auth(general))
    assert r.status_code == 400


def test_assigned_reports(client, user, operativo, general, make_report):
    mine = make_report(user)
    make_report(user)
    client.put(f"/admin/reports/{mine.id}/assign", json={"asignado_a": operativo.id}, headers=auth(general))
    r = client.get("/admin/reports/assigned", headers=auth(operativo))
    body = r.json()
    assert body["count"] == 1
    assert body["data"][0]["id"] == mine.id


def test_admin_delete_needs_manager(client, db, user, operativo, general, make_report):
    report = make_report(user)
    assert client.delete(f"/admin/reports/{report.id}", headers=auth(operativo)).status_code == 403
    assert client.delete(f"/admin/reports/{report.id}", headers=auth(general)).status_code == 200
    assert client.delete(f"/admin/reports/{report.id}", headers=auth(general)).status_code == 404


def test_change_role(client, db, user, general, superadmin):
    url = f"/admin/users/{user.id}/role"
    assert client.put(url, json={"role": "admin_operativo"}, headers=auth(general)).status_code == 403

    r = client.put(url, json={"role": "admin_operativo"}, headers=auth(superadmin))
    assert r.status_code == 200
    assert r.json()["data"] == {"id": user.id, "role": "admin_operativo"}
    db.expire_all()
    assert db.get(User, user.id).role == UserRole.admin_operativo


def test_change_role_rejects_self_and_bad_roles(client, user, superadmin):
    r = client.put(f"/admin/users/{superadmin.id}/role", json={"role": "usuario"}, headers=auth(superadmin))
    assert r.status_code == 400
    r = client.put(f"/admin/users/{user.id}/role", json={"role": "emperador"}, headers=auth(superadmin))
    assert r.status_code == 400
    r = client.put("/admin/users/999/role", json={"role": "usuario"}, headers=auth(superadmin))
    assert r.status_code == 404


def test_users_stats(client, user, operativo, general, make_user):
    make_user(is_active=False)
    r = client.get("/admin/users/stats", headers=auth(general))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["total"] == 4
    assert data["activos"] == 3
    assert data["verificados"] == 4
    assert data["nuevos_30_dias"] == 4
    assert data["por_rol"]["usuario"] == 2
    assert client.get("/admin/users/stats", headers=auth(operativo)).status_code == 403
