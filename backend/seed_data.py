"""Seed database with a demo organization, agreement and grievance procedure."""
from caseflow.database import SessionLocal
from caseflow.models import (
    Agreement, BargainingUnit, Complaint, Organization, StepTemplate, User
)
from caseflow.services.sequence_allocator import SequenceKind, allocate_next, format_complaint_number
import uuid

DEMO_ORG_ID = uuid.UUID('00000000-0000-0000-0000-000000000001')

# (stage, step_number, name, time_limit_days, is_calendar_days)
PROCEDURE = [
    ("INFORMAL", 1, "Informal discussion", 10, False),
    ("FORMAL", 2, "Step 1 - Supervisor", 15, False),
    ("FORMAL", 3, "Step 2 - Department head", 20, False),
    ("FORMAL", 4, "Step 3 - Labour relations", 30, True),
    ("FORMAL", 5, "Referral to arbitration", 0, True),
]


def seed():
    """Seed database with demo data."""
    db = SessionLocal()

    try:
        if db.query(Organization).filter(Organization.id == DEMO_ORG_ID).first():
            print("Demo organization already exists, nothing to do")
            return

        org = Organization(id=DEMO_ORG_ID, name="Demo Local 100")
        db.add(org)
        db.flush()

        officer = User(
            id=uuid.UUID('00000000-0000-0000-0000-000000000101'),
            org_id=org.id,
            name="Jordan Lee",
            email="jordan.lee@example.org",
        )
        steward = User(
            id=uuid.UUID('00000000-0000-0000-0000-000000000102'),
            org_id=org.id,
            name="Sam Rivera",
            email="sam.rivera@example.org",
        )
        db.add_all([officer, steward])

        unit = BargainingUnit(org_id=org.id, name="Clerical and Technical")
        db.add(unit)
        db.flush()

        agreement = Agreement(org_id=org.id, bargaining_unit_id=unit.id, name="Collective Agreement 2025-2028")
        db.add(agreement)
        db.flush()

        for case_type in ("INDIVIDUAL", "GROUP", "POLICY"):
            for stage, step_number, name, limit, calendar in PROCEDURE:
                db.add(
                    StepTemplate(
                        agreement_id=agreement.id,
                        type=case_type,
                        stage=stage,
                        step_number=step_number,
                        name=name,
                        description=f"{name} meeting and written response",
                        time_limit_days=limit,
                        is_calendar_days=calendar,
                        required_participants=["Grievor", "Steward"],
                        required_documents=[],
                    )
                )

        complaint_number = format_complaint_number(allocate_next(db, org.id, SequenceKind.COMPLAINT))
        db.add(
            Complaint(
                org_id=org.id,
                bargaining_unit_id=unit.id,
                agreement_id=agreement.id,
                complaint_number=complaint_number,
                type="INDIVIDUAL",
                category="Scheduling",
                complainant_first_name="Alex",
                complainant_last_name="Morgan",
                complainant_member_number="M-2041",
                complainant_position="Records clerk",
                complainant_department="Records",
                complainant_supervisor="Pat Chen",
                issue="Overtime was offered out of seniority order.",
                settlement_desired="Pay for the missed overtime shift.",
                articles_violated=["12.03", "12.05"],
                created_by_id=steward.id,
            )
        )

        db.commit()
        print(f"Seeded organization {org.id} with agreement {agreement.id} and complaint {complaint_number}")

    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
