"""Seed data for development and testing."""

from datetime import date

from sqlalchemy.orm import Session

from casevault_api.auth.api_key import compute_key_digest, compute_key_prefix, hash_password
from casevault_api.cases.service import CaseService
from casevault_api.models import APIKey, Case, User
from casevault_api.models.user import ROLE_CLIENT, ROLE_INVESTIGATOR

DEMO_INVESTIGATOR_KEY = "cv_demo_investigator_key_0001"
DEMO_CLIENT_KEY = "cv_demo_client_key_0001"
DEMO_CASE_NUMBER = "CASE-00001"


def _seed_user(
    db: Session,
    email: str,
    first_name: str,
    last_name: str,
    role: str,
    raw_key: str,
) -> User:
    """Create a demo user with a known API key, unless it already exists."""
    user = db.query(User).filter(User.email == email).first()
    if user:
        print(f"✓ Demo {role} already exists: {email}")
        return user

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        password_hash=hash_password("demo-password"),
        is_active=True,
    )
    db.add(user)
    db.flush()

    db.add(
        APIKey(
            user_id=user.id,
            prefix=compute_key_prefix(raw_key),
            digest=compute_key_digest(raw_key),
            label="Demo API Key",
            is_active=True,
        )
    )
    db.commit()
    print(f"✓ Created demo {role}: {email} (ID: {user.id})")
    print(f"  API Key: {raw_key}")
    return user


def seed_users(db: Session) -> tuple[User, User]:
    """Seed a demo investigator and client."""
    investigator = _seed_user(
        db, "investigator@casevault.local", "Dana", "Reyes", ROLE_INVESTIGATOR, DEMO_INVESTIGATOR_KEY
    )
    client = _seed_user(
        db, "client@casevault.local", "Sam", "Okafor", ROLE_CLIENT, DEMO_CLIENT_KEY
    )
    return investigator, client


def seed_case(db: Session, investigator: User, client: User) -> Case:
    """Seed a demo case. Creating it starts the case's audit chain."""
    case = db.query(Case).filter(Case.case_number == DEMO_CASE_NUMBER).first()
    if case:
        print(f"✓ Demo case already exists: {case.case_number}")
        return case

    case = CaseService(db).create_case(
        lead=investigator,
        case_name="Demo laptop seizure",
        client_id=client.id,
        case_number=DEMO_CASE_NUMBER,
        case_type="Computer Forensics",
        priority="High",
        start_date=date.today(),
    )
    print(f"✓ Created demo case: {case.case_number} (ID: {case.id})")
    return case


def seed_all(db: Session):
    """Seed all demo data."""
    investigator, client = seed_users(db)
    seed_case(db, investigator, client)
