# deployhub/repositories/base_repository.py
from contextlib import contextmanager
from typing import TypeVar, Generic, List, Optional, Type, Dict, Any
from sqlalchemy.orm import Session, Query
from sqlalchemy.exc import SQLAlchemyError
from deployhub.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Accès CRUD générique; toute erreur SQLAlchemy annule la transaction puis remonte"""

    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    @contextmanager
    def _rollback_on_error(self):
        try:
            yield
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def _where(self, field: str, value: Any) -> Query:
        return self.db.query(self.model).filter(getattr(self.model, field) == value)

    def _commit(self, db_obj: ModelType) -> ModelType:
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj

    # === LECTURE ===
    def get_by_id(self, id: int) -> Optional[ModelType]:
        with self._rollback_on_error():
            return self._where("id", id).first()

    def get_all(self, skip: int = 0, limit: Optional[int] = None) -> List[ModelType]:
        """Enregistrements triés par id, pagination optionnelle"""
        with self._rollback_on_error():
            query = self.db.query(self.model).order_by(self.model.id).offset(skip)
            if limit is not None:
                query = query.limit(limit)
            return query.all()

    def get_by_field(self, field: str, value: Any) -> Optional[ModelType]:
        with self._rollback_on_error():
            return self._where(field, value).first()

    def get_many_by_field(self, field: str, value: Any) -> List[ModelType]:
        with self._rollback_on_error():
            return self._where(field, value).order_by(self.model.id).all()

    def field_exists(self, field: str, value: Any) -> bool:
        with self._rollback_on_error():
            return self._where(field, value).with_entities(self.model.id).first() is not None

    def exists(self, id: int) -> bool:
        return self.field_exists("id", id)

    def count(self) -> int:
        with self._rollback_on_error():
            return self.db.query(self.model).count()

    # === ÉCRITURE ===
    def create(self, obj_data: Dict[str, Any]) -> ModelType:
        with self._rollback_on_error():
            db_obj = self.model(**obj_data)
            self.db.add(db_obj)
            return self._commit(db_obj)

    def update(self, id: int, obj_data: Dict[str, Any]) -> Optional[ModelType]:
        """Met à jour les attributs connus du modèle; None si l'id est inconnu"""
        with self._rollback_on_error():
            db_obj = self.get_by_id(id)
            if db_obj is None:
                return None
            for field, value in obj_data.items():
                if hasattr(db_obj, field):
                    setattr(db_obj, field, value)
            return self._commit(db_obj)

    def save(self, db_obj: ModelType) -> ModelType:
        """Persiste une instance déjà chargée et modifiée"""
        with self._rollback_on_error():
            self.db.add(db_obj)
            return self._commit(db_obj)

    def delete(self, id: int) -> bool:
        with self._rollback_on_error():
            db_obj = self.get_by_id(id)
            if db_obj is None:
                return False
            self.db.delete(db_obj)
            self.db.commit()
            return True
