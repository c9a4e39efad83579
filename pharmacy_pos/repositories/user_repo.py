from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from pharmacy_pos.db.base import User as DbUser
from pharmacy_pos.domain.entities import User
from pharmacy_pos.domain.interfaces import IUserRepository


class UserRepository(IUserRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def add(self, user: User) -> User:
        db_user = DbUser(
            email=user.email,
            name=user.name,
            role=user.role,
            is_active=user.is_active,
            password_hash=user.password_hash,
        )
        self.db.add(db_user)
        self.db.flush()
        self.db.refresh(db_user)
        return self._to_domain(db_user)

    def update(self, user: User) -> User:
        db_user = self.db.get(DbUser, user.id)
        if not db_user:
            raise ValueError("User not found")
        db_user.email = user.email
        db_user.name = user.name
        db_user.role = user.role
        db_user.is_active = user.is_active
        if user.password_hash:
            db_user.password_hash = user.password_hash
        self.db.flush()
        self.db.refresh(db_user)
        return self._to_domain(db_user)

    def get_by_id(self, user_id: int) -> Optional[User]:
        db_user = self.db.get(DbUser, user_id)
        return self._to_domain(db_user) if db_user else None

    def get_by_email(self, email: str) -> Optional[User]:
        db_user = self.db.query(DbUser).filter_by(email=email.lower()).first()
        return self._to_domain(db_user) if db_user else None

    def list_users(
        self, role: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[User], int]:
        query = self.db.query(DbUser)
        if role:
            query = query.filter(DbUser.role == role)
        total = query.count()
        rows = (
            query.order_by(DbUser.id.asc()).offset((page - 1) * limit).limit(limit).all()
        )
        return [self._to_domain(r) for r in rows], total

    def _to_domain(self, db_user: DbUser) -> User:
        return User(
            id=getattr(db_user, "id", None),
            email=getattr(db_user, "email", ""),
            name=getattr(db_user, "name", ""),
            role=getattr(db_user, "role", "cashier"),
            is_active=bool(getattr(db_user, "is_active", True)),
            password_hash=getattr(db_user, "password_hash", None),
            created_at=getattr(db_user, "created_at", None),
            updated_at=getattr(db_user, "updated_at", None),
        )
