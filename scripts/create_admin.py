"""
python -m scripts.create_admin <phone> <password>

Platform admins cannot register through the API; this creates one, or
promotes an existing user with that phone number.
"""

import sys

sys.path.insert(0, ".")

from dotenv import load_dotenv
load_dotenv()

from app.database import SessionLocal
from app.crud.user import user as user_crud
from app.models.user import UserRole


def create_admin(phone: str, password: str):
    """Create or promote a platform admin."""
    db = SessionLocal()

    try:
        existing = user_crud.get_by_phone(db, phone)
        if existing is not None:
            existing.role = UserRole.PLATFORM_ADMIN
            db.commit()
            print(f"Promoted user {existing.id} to platform admin")
            return

        admin = user_crud.create(db, phone=phone, password=password, role=UserRole.PLATFORM_ADMIN)
        print(f"Created platform admin {admin.id}")

    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        raise
    finally:
        db.close()

if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(1)
    create_admin(sys.argv[1], sys.argv[2])
