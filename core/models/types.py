from sqlalchemy import JSON, BIGINT, Integer
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JsonList = JSON().with_variant(JSONB(), "postgresql")

# SQLite only autoincrements INTEGER primary keys
BigIntPK = BIGINT().with_variant(Integer(), "sqlite")
