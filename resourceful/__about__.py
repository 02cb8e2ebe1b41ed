__version__ = "0.4.0"
__description__ = "resourceful : convention-driven CRUD handlers and nested route declarations for Flask-SQLAlchemy"
