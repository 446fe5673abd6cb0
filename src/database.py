import os
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from dotenv import load_dotenv
from asyncpg import Connection
from uuid import uuid4
from sqlalchemy import (
    JSON, Boolean, Column, ForeignKey, Integer, String,
    func, DateTime,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, relationship

load_dotenv()

POSTGRES_USER = os.getenv("POSTGRES_USER")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD")
POSTGRES_DB = os.getenv("POSTGRES_DB_URL")
DB_ECHO = os.getenv("DB_ECHO", "0").lower() in ("1", "true", "yes")

class Base(DeclarativeBase): pass

postgres_file_name = f"{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_DB}"

DATABASE_URL = os.getenv("DATABASE_URL", f"postgresql+asyncpg://{postgres_file_name}")

# JSONB on PostgreSQL, plain JSON elsewhere
JsonColumn = JSON().with_variant(JSONB(), "postgresql")

class FixedConnection(Connection):
    def _get_unique_id(self, prefix: str) -> str:
        return f'__asyncpg_{prefix}_{uuid4()}__'


engine = create_async_engine(
    DATABASE_URL,
    echo=DB_ECHO,
    future=True,
    connect_args={
        "statement_cache_size": 0,
        "prepared_statement_cache_size": 0,
        "connection_class": FixedConnection,
    } if DATABASE_URL.startswith("postgresql+asyncpg") else {},
)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


async def get_session():
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

#ORM

class TournamentORM(Base):
    __tablename__ = "roundrobin_tournaments"

    id                     = Column(String, primary_key=True)
    mode                   = Column(String, nullable=False, default="singles")  # singles | doubles
    name                   = Column(String, nullable=False)
    current_round          = Column(Integer, nullable=False, default=1)
    total_rounds           = Column(Integer, nullable=False, default=1)
    points_to_win          = Column(Integer, nullable=False, default=21)
    require_two_point_lead = Column(Boolean, nullable=False, default=True)
    is_active              = Column(Boolean, nullable=False, default=True)
    idle_history           = Column(JsonColumn, nullable=False, default=dict)  # {"round": [player ids]}
    created_at             = Column(DateTime(timezone=True), server_default=func.now())
    updated_at             = Column(DateTime(timezone=True), server_default=func.now())

    players = relationship(
        "PlayerORM",
        back_populates="tournament",
        cascade="all, delete-orphan",
        order_by="PlayerORM.position",
        lazy="selectin",
    )
    matches = relationship(
        "MatchORM",
        back_populates="tournament",
        cascade="all, delete-orphan",
        order_by="MatchORM.round, MatchORM.position",
        lazy="selectin",
    )


class PlayerORM(Base):
    __tablename__ = "roundrobin_players"

    id                  = Column(String, primary_key=True)
    tournament_id       = Column(String, ForeignKey("roundrobin_tournaments.id", ondelete="CASCADE"), primary_key=True)
    position            = Column(Integer, nullable=False)  # roster order drives singles pairing
    name                = Column(String, nullable=False)
    matches_played      = Column(Integer, nullable=False, default=0)
    wins                = Column(Integer, nullable=False, default=0)
    total_points_scored = Column(Integer, nullable=False, default=0)
    games_played        = Column(Integer, nullable=False, default=0)
    idle_rounds         = Column(JsonColumn, nullable=False, default=list)

    tournament = relationship("TournamentORM", back_populates="players")


class MatchORM(Base):
    __tablename__ = "roundrobin_matches"

    id            = Column(String, primary_key=True)
    tournament_id = Column(String, ForeignKey("roundrobin_tournaments.id", ondelete="CASCADE"), primary_key=True)
    round         = Column(Integer, nullable=False)
    position      = Column(Integer, nullable=False)
    players       = Column(JsonColumn, nullable=False)   # list[str] -- player ids
    scores        = Column(JsonColumn, nullable=False)   # [int, int]
    completed     = Column(Boolean, nullable=False, default=False)
    is_doubles    = Column(Boolean, nullable=False, default=False)
    is_singles    = Column(Boolean, nullable=True)

    tournament = relationship("TournamentORM", back_populates="matches")
