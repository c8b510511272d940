#!/usr/bin/env python3
"""
Bootstrap a tenant with an owner user and print an access token for it.
Usage: python create_owner.py <tenant_slug> <email> [minutes]
"""
import sys

from app.core.database import SessionLocal
from app.core.security import create_token
from app.models.tenant import Tenant
from app.models.user import User


def create_owner(slug: str, email: str, minutes: int = 60 * 24) -> None:
    db = SessionLocal()
    try:
        tenant = db.query(Tenant).filter(Tenant.slug == slug).first()
        if not tenant:
            print(f"Creating tenant '{slug}'...")
            tenant = Tenant(name=slug, slug=slug)
            db.add(tenant)
            db.flush()

        user = db.query(User).filter(User.tenant_id == tenant.id, User.email == email).first()
        if user:
            user.role = 'owner'
            user.is_active = True
        else:
            user = User(email=email, role='owner', tenant_id=tenant.id)
            db.add(user)
        db.commit()
        db.refresh(user)

        token = create_token(str(user.id), minutes, token_type="access")
        print(f"\n{'=' * 50}")
        print(f"Tenant: {tenant.slug} (X-Tenant-ID)")
        print(f"Owner:  {user.email} (id={user.id})")
        print(f"Token:  {token}")
        print(f"{'=' * 50}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == '__main__':
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)
    create_owner(sys.argv[1], sys.argv[2], int(sys.argv[3]) if len(sys.argv) > 3 else 60 * 24)
