# File: vecinity/db/base.py
# Project: vecinity-backend
# Auto-added for reference

from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    pass
