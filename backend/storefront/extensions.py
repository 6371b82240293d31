# Overview: Flask extension instances for local client storage.

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
