import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from database import get_db
from email_templates import build_contact_notification, build_membership_notification
from emailer import notify_email_address, send_email_best_effort
from models import ContactMessage, MembershipApplication, Profile
from schemas import (
    ContactCreate,
    ContactResponse,
    DoctorDetails,
    MembershipApplicationCreate,
    MembershipApplicationResponse,
)
from security import require_admin
from utils import IMAGE_TYPES, _upload_to_s3

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/site/contact", response_model=ContactResponse)
def submit_contact(payload: ContactCreate, db: Session = Depends(get_db)):
    message = ContactMessage(
        name=payload.name.strip(),
        email=str(payload.email),
        phone=payload.phone,
        subject=payload.subject,
        message=payload.message.strip(),
    )
    db.add(message)
    db.commit()
    db.refresh(message)

    subject, html, text = build_contact_notification(message.name, message.email, message.phone or "", message.subject or "", message.message)
    send_email_best_effort(notify_email_address(), subject, html, text)
    return ContactResponse.model_validate(message)


def _doctor_from_form(prefix: str, name: Optional[str], registration_number: Optional[str], email: Optional[str], phone: Optional[str], qualification: Optional[str], photo: Optional[UploadFile]) -> Optional[dict]:
    if not (name or "").strip():
        return None
    doctor = {
        "name": name.strip(),
        "registration_number": (registration_number or "").strip() or None,
        "email": (email or "").strip() or None,
        "phone": (phone or "").strip() or None,
        "qualification": (qualification or "").strip() or None,
    }
    if photo is not None and photo.filename:
        doctor["photo_url"] = _upload_to_s3(photo, f"membership/{prefix}", allowed_types=IMAGE_TYPES)
    return doctor


@router.post("/site/membership", response_model=MembershipApplicationResponse)
def submit_membership(
    membership_type: str = Form(...),
    declaration_accepted: bool = Form(False),
    address: Optional[str] = Form(None),
    doctor1_name: str = Form(...),
    doctor1_registration_number: Optional[str] = Form(None),
    doctor1_email: Optional[str] = Form(None),
    doctor1_phone: Optional[str] = Form(None),
    doctor1_qualification: Optional[str] = Form(None),
    doctor1_photo: Optional[UploadFile] = File(None),
    doctor2_name: Optional[str] = Form(None),
    doctor2_registration_number: Optional[str] = Form(None),
    doctor2_email: Optional[str] = Form(None),
    doctor2_phone: Optional[str] = Form(None),
    doctor2_qualification: Optional[str] = Form(None),
    doctor2_photo: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
):
    # Validate the text fields before any photo reaches S3.
    try:
        validated = MembershipApplicationCreate(
            membership_type=membership_type,
            declaration_accepted=declaration_accepted,
            address=address,
            doctor1=DoctorDetails(name=doctor1_name.strip(), email=doctor1_email or None),
            doctor2=DoctorDetails(name=doctor2_name, email=doctor2_email or None) if (doctor2_name or "").strip() else None,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=[{"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()])

    doctor1 = _doctor_from_form("doctor1", doctor1_name, doctor1_registration_number, doctor1_email, doctor1_phone, doctor1_qualification, doctor1_photo)
    doctor2 = None
    if validated.doctor2:
        doctor2 = _doctor_from_form("doctor2", doctor2_name, doctor2_registration_number, doctor2_email, doctor2_phone, doctor2_qualification, doctor2_photo)
    application = MembershipApplicationCreate(
        membership_type=membership_type,
        declaration_accepted=declaration_accepted,
        address=address,
        doctor1=doctor1,
        doctor2=doctor2,
    )

    row = MembershipApplication(
        membership_type=application.membership_type.value,
        doctor1=application.doctor1.model_dump(),
        doctor2=application.doctor2.model_dump() if application.doctor2 else None,
        address=application.address,
        declaration_accepted=application.declaration_accepted,
    )
    db.add(row)
    db.commit()
    db.refresh(row)

    doctors = [row.doctor1] + ([row.doctor2] if row.doctor2 else [])
    subject, html, text = build_membership_notification(row.membership_type, doctors, row.address or "")
    send_email_best_effort(notify_email_address(), subject, html, text)
    logger.info("Membership application %s received (%s)", row.id, row.membership_type)
    return MembershipApplicationResponse.model_validate(row)


@router.get("/admin/site/contact-messages", response_model=List[ContactResponse])
def list_contact_messages(admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    rows = db.query(ContactMessage).order_by(ContactMessage.id.desc()).all()
    return [ContactResponse.model_validate(row) for row in rows]


@router.get("/admin/site/membership-applications", response_model=List[MembershipApplicationResponse])
def list_membership_applications(admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    rows = db.query(MembershipApplication).order_by(MembershipApplication.id.desc()).all()
    return [MembershipApplicationResponse.model_validate(row) for row in rows]
