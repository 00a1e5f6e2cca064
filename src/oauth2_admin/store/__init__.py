"""
Storage Layer

Adapters between the administration services and the database.

- records.py: the Record Store Adapter, one :class:`RecordStore` per record type, translating unique index
  violations into ``ConflictError`` and missing rows into ``NotFound``
- tokens.py: token lookup by signature and the expiry purge used by the background sweep
"""
