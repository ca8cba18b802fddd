"""User service — user and branch records used for scoping and assignment."""

from typing import List, Optional

from sqlalchemy.orm import Session

from secureshift.core.exceptions import ConflictError, NotFoundError
from secureshift.models.branch import Branch
from secureshift.models.user import User
from secureshift.services.role_service import RoleService


class UserService:
    """Handles user and branch management."""

    @staticmethod
    def find(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get(db: Session, user_id: int) -> User:
        user = UserService.find(db, user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def create(
        db: Session,
        email: str,
        full_name: str,
        role: str,
        branch_id: Optional[int] = None,
        phone: Optional[str] = None,
    ) -> User:
        """Create a new user."""
        email = email.strip().lower()
        if db.query(User).filter(User.email == email).first():
            raise ConflictError(f"User with email {email} already exists")
        if not RoleService.role_exists(db, role):
            raise NotFoundError(f"Role '{role}' not found")
        if branch_id is not None:
            UserService.get_branch(db, branch_id)

        user = User(
            email=email,
            full_name=full_name,
            role=role,
            branch_id=branch_id,
            phone=phone,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update(db: Session, user: User, **changes) -> User:
        """Apply the given field changes; ``None`` values are ignored."""
        if changes.get("role") is not None and not RoleService.role_exists(db, changes["role"]):
            raise NotFoundError(f"Role '{changes['role']}' not found")
        if changes.get("branch_id") is not None:
            UserService.get_branch(db, changes["branch_id"])
        for key, value in changes.items():
            if value is not None and hasattr(user, key):
                setattr(user, key, value)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def list_users(
        db: Session,
        branch_id: Optional[int] = None,
        role: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ):
        """List users with optional branch/role filters."""
        query = db.query(User)
        if branch_id is not None:
            query = query.filter(User.branch_id == branch_id)
        if role:
            query = query.filter(User.role == role)
        total = query.count()
        users = (
            query.order_by(User.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"users": users, "total": total, "page": page}

    @staticmethod
    def get_branch(db: Session, branch_id: int) -> Branch:
        branch = db.query(Branch).filter(Branch.id == branch_id).first()
        if not branch:
            raise NotFoundError(f"Branch {branch_id} not found")
        return branch

    @staticmethod
    def list_branches(db: Session) -> List[Branch]:
        return db.query(Branch).order_by(Branch.code).all()

    @staticmethod
    def create_branch(
        db: Session,
        name: str,
        code: str,
        city: Optional[str] = None,
        state: Optional[str] = None,
    ) -> Branch:
        code = code.strip().upper()
        if db.query(Branch).filter(Branch.code == code).first():
            raise ConflictError("Site code already exists")
        branch = Branch(name=name, code=code, city=city, state=state)
        db.add(branch)
        db.commit()
        db.refresh(branch)
        return branch


user_service = UserService()
