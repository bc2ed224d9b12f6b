from app.db import SessionLocal
from app.models import BusinessHours, UnitAdvisory

def count_rows(db) -> dict:
    return {
        "business_hours": db.query(BusinessHours).count(),
        "unit_advisory": db.query(UnitAdvisory).count(),
    }

def check_data():
    db = SessionLocal()
    try:
        counts = count_rows(db)
        print("Business Hours rows:", counts["business_hours"])
        print("Unit Advisory rows:", counts["unit_advisory"])
    finally:
        db.close()

if __name__ == "__main__":
    check_data()
