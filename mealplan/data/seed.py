# mealplan/data/seed.py
from mealplan.data.database import SessionLocal, init_db
from mealplan.data.models.customer import CustomerModel

OWNER_ID = 1
DEMO_CUSTOMER_ID = 1001


def seed():
    init_db()
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(CustomerModel).first():
            return
        db.add(CustomerModel(id=OWNER_ID, name="Owner", email="owner@example.com", role="owner"))
        db.add(CustomerModel(
            id=DEMO_CUSTOMER_ID,
            name="Demo Customer",
            email="demo@example.com",
            mobile="9800000000",
            address="12 MG Road",
            role="customer",
        ))
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    seed()
