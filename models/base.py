from sqlalchemy import event
from sqlalchemy.orm import declarative_base

from core.id_generator import generate_random_id

# Shared declarative base for every table
Base = declarative_base()


@event.listens_for(Base, "before_insert", propagate=True)
def assign_random_id(mapper, connection, target):
    # Rows inserted with an explicit id keep it
    if getattr(target, "id", None) is None:
        target.id = generate_random_id(target.__tablename__)
