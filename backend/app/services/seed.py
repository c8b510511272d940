from sqlalchemy.orm import Session

from app.models.tenant import Tenant
from app.models.user import User
from app.services.jewelry_seed import seed_jewelry_demo


def seed_demo(db: Session) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.slug == 'demo').first()
    if tenant:
        return tenant
    tenant = Tenant(name='Demo', slug='demo')
    db.add(tenant)
    db.flush()
    owner = User(email='owner@demo.com', name='Demo Owner', role='owner', tenant_id=tenant.id)
    db.add(owner)
    db.flush()
    seed_jewelry_demo(db, tenant, owner)
    db.commit()
    return tenant
