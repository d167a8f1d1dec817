"""
Transform legacy OPD visits into appointments and, for charged visits, bills.

The legacy system only recorded settled encounters, so every bill produced
here is fully paid with nothing due. A bill's patient/doctor references are
copied from its appointment.
"""

from __future__ import annotations
from datetime import datetime
from typing import Optional
from clinic_migration.core.config import DEFAULT_LEGACY_TIMEZONE
from clinic_migration.load.crosswalk import Crosswalk
from clinic_migration.models.legacy import LegacyOpd
from clinic_migration.transforms.cleaning import (
    as_text,
    format_time,
    normalize_payment_mode,
    parse_timestamp,
    text_or_none,
    to_float,
)

BILL_NO_PREFIX = "BILL-"
CONSULTATION_ITEM = "Consultation Fee"


def transform_opd(row: LegacyOpd, patients: Crosswalk, doctors: Crosswalk,
                  now: datetime, tz: str = DEFAULT_LEGACY_TIMEZONE) -> tuple[dict, Optional[dict]]:
    visit_at = parse_timestamp(row.appointment_date, tz)

    appointment = {
        "appointmentId": as_text(row.opd_no) or None,
        "patientId": patients.resolve(row.patient_id),
        "doctorId": doctors.resolve(row.cons_doctor),
        "legacyPatientId": row.patient_id,
        "legacyDoctorId": row.cons_doctor,
        "appointmentDate": visit_at,
        "timeSlot": {
            "start": format_time(row.appointment_date),
            "end": None,
        },
        "type": "consultation",
        "status": "completed",
        "symptoms": text_or_none(row.symptoms),
        "vitals": {
            "bp": text_or_none(row.bp),
            "pulse": text_or_none(row.pulse),
            "temperature": text_or_none(row.temperature),
            "weight": text_or_none(row.weight),
            "height": text_or_none(row.height),
            "respiration": text_or_none(row.respiration),
        },
        "notes": text_or_none(row.note_remark),
        "legacyId": row.id,
        "createdAt": visit_at or now,
        "updatedAt": now,
    }

    return appointment, build_bill(row, appointment, now)


def build_bill(row: LegacyOpd, appointment: dict, now: datetime) -> Optional[dict]:
    amount = to_float(row.amount)
    if not amount > 0:
        return None
    tax = to_float(row.tax)
    total = amount + tax

    return {
        "billNo": f"{BILL_NO_PREFIX}{as_text(row.opd_no)}",
        "patientId": appointment["patientId"],
        "doctorId": appointment["doctorId"],
        "appointmentId": None,  # set by the link step once the appointment exists
        "legacyId": appointment["legacyId"],
        "legacyPatientId": appointment["legacyPatientId"],
        "legacyDoctorId": appointment["legacyDoctorId"],
        "billDate": appointment["appointmentDate"],
        "items": [{
            "description": CONSULTATION_ITEM,
            "quantity": 1,
            "rate": amount,
            "amount": amount,
        }],
        "subtotal": amount,
        "discountType": "fixed",
        "discountValue": 0,
        "discountAmount": 0,
        "taxAmount": tax,
        "grandTotal": total,
        "paidAmount": total,
        "dueAmount": 0,
        "paymentMode": normalize_payment_mode(row.payment_mode),
        "paymentStatus": "paid",
        "createdAt": appointment["createdAt"],
        "updatedAt": now,
    }
