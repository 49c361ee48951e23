import logging
from sqlalchemy import select
from app.core.config import settings
from app.core.logging import setup_logging
from app.core.security import Role, hash_password
from app.db.session import SessionLocal
from app.models.user import User

log = logging.getLogger(__name__)

def main():
    email = settings.seed_admin_email.strip().lower()
    password = settings.seed_admin_password

    db = SessionLocal()
    try:
        existing = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if existing:
            log.info("admin %s already exists", email)
            return
        db.add(User(email=email, name="Administrator", password_hash=hash_password(password), role=Role.ADMIN.value))
        db.commit()
        log.info("admin %s created", email)
    finally:
        db.close()

if __name__ == "__main__":
    setup_logging(settings.log_level, settings.log_format)
    main()
