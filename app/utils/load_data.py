import pandas as pd
from sqlalchemy.orm import Session
from app.db import SessionLocal, engine
from app.models import BusinessHours, UnitAdvisory, Base

# Create tables if not exist
Base.metadata.create_all(bind=engine)

def _positions(db: Session) -> dict:
    """Existing unit order, so appended rows keep their unit's position."""
    positions = {}
    for model in (BusinessHours, UnitAdvisory):
        for unit_id, position in db.query(model.unit_id, model.position).all():
            positions.setdefault(unit_id, position)
    return positions

def _position_for(positions: dict, unit_id: str) -> int:
    if unit_id not in positions:
        positions[unit_id] = max(positions.values(), default=-1) + 1
    return positions[unit_id]

def load_business_hours(file_path: str, db: Session) -> int:
    # Times are kept as text; the evaluator decides what is well-formed
    df = pd.read_csv(file_path, dtype=str).fillna("")
    positions = _positions(db)

    for _, row in df.iterrows():
        unit_id = row["unit_id"].strip()
        record = BusinessHours(
            unit_id=unit_id,
            position=_position_for(positions, unit_id),
            day=row["day"].strip(),
            open_time=row["open"].strip(),
            close_time=row["close"].strip(),
        )
        db.add(record)
    db.commit()
    print("✅ Business hours data loaded.")
    return len(df)

def load_unit_advisories(file_path: str, db: Session) -> int:
    df = pd.read_csv(file_path, dtype=str).fillna("")
    positions = _positions(db)

    for _, row in df.iterrows():
        unit_id = row["unit_id"].strip()
        record = UnitAdvisory(
            unit_id=unit_id,
            position=_position_for(positions, unit_id),
            emergency=row["emergency"].strip() or None,
        )
        db.add(record)
    db.commit()
    print("✅ Unit advisory data loaded.")
    return len(df)

def run_ingestion():
    db = SessionLocal()
    try:
        load_business_hours("data/business_hours.csv", db)
        load_unit_advisories("data/unit_advisory.csv", db)
    finally:
        db.close()

if __name__ == "__main__":
    run_ingestion()
