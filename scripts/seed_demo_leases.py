"""
Create a demo property with an active lease, and print bearer tokens for a tenant,
the property owner, and an admin (no login service required).
Use when running the API on its own so you can try the move permit flow.

Run from project root:
  python scripts/seed_demo_leases.py

Tokens are printed at the end. Send them as "Authorization: Bearer <token>".
"""
import os
import sys
from datetime import date

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.database import Base, SessionLocal, engine
from app.models.property import Lease, LeaseStatus, Property
from app.services.auth import ActorRole, create_access_token

# Default demo identities (change if you want)
OWNER_USER_ID = 100
TENANT_USER_ID = 1
ADMIN_USER_ID = 900

PROPERTY_NAME = "Marina Heights 1204"
PROPERTY_STREET = "Al Marsa Street"
PROPERTY_CITY = "Dubai"


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        prop = db.query(Property).filter(Property.name == PROPERTY_NAME).first()
        if prop:
            print(f"Property already exists: {PROPERTY_NAME} (id={prop.id})")
        else:
            prop = Property(
                owner_user_id=OWNER_USER_ID,
                name=PROPERTY_NAME,
                street=PROPERTY_STREET,
                city=PROPERTY_CITY,
            )
            db.add(prop)
            db.flush()
            print(f"Created property: {PROPERTY_NAME} (id={prop.id})")

        lease = (
            db.query(Lease)
            .filter(Lease.property_id == prop.id, Lease.tenant_user_id == TENANT_USER_ID)
            .first()
        )
        if lease:
            print(f"Lease already exists (id={lease.id}, status={lease.status.value})")
        else:
            lease = Lease(
                property_id=prop.id,
                tenant_user_id=TENANT_USER_ID,
                status=LeaseStatus.active,
                start_date=date.today(),
            )
            db.add(lease)
            db.flush()
            print(f"Created active lease (id={lease.id}) for tenant {TENANT_USER_ID}")

        db.commit()
        lease_id = lease.id
    finally:
        db.close()

    print("\n--- Bearer tokens ---")
    print(f"Tenant (user {TENANT_USER_ID}, lease {lease_id}):")
    print("  " + create_access_token(TENANT_USER_ID, ActorRole.tenant.value, "tenant@movepermits.demo"))
    print(f"Owner (user {OWNER_USER_ID}):")
    print("  " + create_access_token(OWNER_USER_ID, ActorRole.owner.value, "owner@movepermits.demo"))
    print(f"Admin (user {ADMIN_USER_ID}):")
    print("  " + create_access_token(ADMIN_USER_ID, ActorRole.admin.value, "admin@movepermits.demo"))


if __name__ == "__main__":
    main()
