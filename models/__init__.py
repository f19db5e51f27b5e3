"""
Persistence layer: models, DBStorage and the two stores.

`storage` is the process-wide DBStorage used by the Flask app; create_app()
binds it to the configured DATABASE_URL.
"""
from models.db_storage import DBStorage

storage = DBStorage()
