from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from vetclinic.core import config


engine = create_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()
