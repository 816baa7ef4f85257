from sqlalchemy.orm import DeclarativeBase

# Integer primary/foreign keys are 32-bit signed on PostgreSQL.
MAX_INT_ID = 2_147_483_647


def id_in_range(value: int) -> bool:
    return 0 <= value <= MAX_INT_ID


class Base(DeclarativeBase):
    pass
