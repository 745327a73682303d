# File: agromarket/repositories/base_repository.py

from typing import Any, Dict, Generic, Iterator, Optional, Type, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base repository class providing common data access for all entities using
    modern SQLAlchemy select() syntax.

    Repositories only flush; committing belongs to the service that owns the
    transaction, so several repository calls can form one atomic unit.

    Attributes:
        session (Session): The SQLAlchemy session for database operations
        model (Type[T]): The SQLAlchemy model class this repository manages
    """

    model: Optional[Type[T]] = None

    def __init__(self, session: Session, model: Optional[Type[T]] = None):
        """
        Initialize the repository with a database session and the specific model.

        Args:
            session (Session): SQLAlchemy database session
            model (Type[T]): The model class; subclasses set it as a class attribute
        """
        self.session = session
        if model is not None:
            self.model = model

    def _get_model(self) -> Type[T]:
        """Ensures the model is set before use."""
        if self.model is None:
            raise TypeError(f"Repository model is not set for {self.__class__.__name__}")
        return self.model

    def _filtered(self, stmt: Select, **filters) -> Select:
        model_class = self._get_model()
        for key, value in filters.items():
            if hasattr(model_class, key):
                stmt = stmt.where(getattr(model_class, key) == value)
        return stmt

    def get_by_id(self, id: int) -> Optional[T]:
        """
        Retrieve an entity by its primary key ID.

        Args:
            id (int): The primary key ID of the entity

        Returns:
            Optional[T]: The entity if found, None otherwise
        """
        model_class = self._get_model()
        stmt = select(model_class).where(model_class.id == id)
        return self.session.execute(stmt).scalar_one_or_none()

    def lock_by_id(self, id: int) -> Optional[T]:
        """
        Retrieve an entity and lock its row until the transaction ends.

        The identity map is refreshed from the locked row, so values read
        before the lock was taken are never reused.
        """
        model_class = self._get_model()
        stmt = (
            select(model_class)
            .where(model_class.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def stream(self, stmt: Select, batch_size: int = 100) -> Iterator[T]:
        """
        Stream results in batches without loading everything into memory.

        Args:
            stmt: Ordered select statement to page through
            batch_size (int): Batch size for fetching records

        Yields:
            Entity instances, one at a time
        """
        offset = 0
        while True:
            batch = self.session.execute(stmt.offset(offset).limit(batch_size)).scalars().all()
            if not batch:
                break

            yield from batch

            if len(batch) < batch_size:  # Last batch was partial
                break

            offset += batch_size

    def add(self, entity: T) -> T:
        """Add an entity to the session and flush so its primary key is assigned."""
        self.session.add(entity)
        self.session.flush()
        return entity

    def create(self, data: Dict[str, Any]) -> T:
        """
        Create a new entity from a dictionary of column values.

        Args:
            data (Dict[str, Any]): Dictionary containing entity field values

        Returns:
            T: The created (flushed, uncommitted) entity
        """
        model_class = self._get_model()
        model_columns = {c.name for c in model_class.__table__.columns}
        entity = model_class(**{k: v for k, v in data.items() if k in model_columns})
        return self.add(entity)

    def update(self, entity: T, data: Dict[str, Any]) -> T:
        """
        Apply column values to an already loaded entity.

        Args:
            entity: The entity to modify
            data (Dict[str, Any]): Dictionary containing the fields to update

        Returns:
            T: The updated (flushed, uncommitted) entity
        """
        columns = entity.__table__.columns.keys()
        for key, value in data.items():
            if key in columns:
                setattr(entity, key, value)
        self.session.flush()
        return entity

    def count(self, **filters) -> int:
        """
        Count entities matching the given filters.

        Args:
            **filters: Filters to apply (field=value pairs)

        Returns:
            int: Count of matching entities
        """
        model_class = self._get_model()
        stmt = self._filtered(select(func.count(model_class.id)).select_from(model_class), **filters)
        return self.session.execute(stmt).scalar_one()
