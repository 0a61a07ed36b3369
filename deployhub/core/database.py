# deployhub/core/database.py
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

Base = declarative_base()


class DatabaseManager:
    """Singleton pour la gestion de la base de données"""
    _instance = None
    _engine = None
    _session_factory = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(DatabaseManager, cls).__new__(cls)
        return cls._instance

    def _initialize_database(self, database_url: Optional[str] = None):
        """Initialise la connexion à la base de données"""
        database_url = database_url or self._get_database_url()

        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self._engine = create_engine(
            database_url,
            pool_pre_ping=True,
            pool_recycle=300,
            echo=False,
            connect_args=connect_args,
        )

        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self._engine
        )

    def _get_database_url(self) -> str:
        """Construit l'URL de la base de données"""
        from deployhub.config import settings

        return settings.database_url

    @property
    def engine(self):
        if self._engine is None:
            self._initialize_database()
        return self._engine

    def get_session(self) -> Session:
        """Retourne une nouvelle session de base de données"""
        if self._session_factory is None:
            self._initialize_database()
        return self._session_factory()

    def create_tables(self):
        """Crée toutes les tables"""
        import deployhub.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)


# Instance singleton
db_manager = DatabaseManager()


def get_db() -> Generator[Session, None, None]:
    """Générateur de session pour l'injection de dépendances FastAPI"""
    db = db_manager.get_session()
    try:
        yield db
    finally:
        db.close()
