from activation_server.db.base import Base
from activation_server.db.session import build_engine, build_sessionmaker

__all__ = ["Base", "build_engine", "build_sessionmaker"]
