"""Shared table metadata."""

from sqlalchemy import DDL, MetaData, event

# Services and appointments reference each other, so they share one MetaData
metadata = MetaData()

# gen_random_uuid() and the gist exclusion constraint on appointments
event.listen(metadata, "before_create", DDL('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))
event.listen(metadata, "before_create", DDL('CREATE EXTENSION IF NOT EXISTS "btree_gist"'))
