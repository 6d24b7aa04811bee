# Database utilities package
from .mongo import close_client, create_client, get_client, get_database
from .store import MongoRecordStore, RecordStore
