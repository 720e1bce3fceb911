# /oracle_assistant/db/base_class.py

from sqlalchemy.orm import declarative_base

# Every ORM model inherits from this Base so that a single
# `Base.metadata.create_all()` call provisions the whole schema.
Base = declarative_base()
