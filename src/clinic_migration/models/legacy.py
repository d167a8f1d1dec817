"""
Typed records for the legacy tables read from the dump.

Field order matches the legacy column order, so a parsed VALUES row maps onto
a record positionally.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from typing import ClassVar, Sequence, Union

Scalar = Union[int, float, str, None]


@dataclass(frozen=True)
class LegacyRow:
    TABLE: ClassVar[str] = ""

    @classmethod
    def columns(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_values(cls, values: Sequence[Scalar]):
        cols = cls.columns()
        if len(values) != len(cols):
            raise ValueError(f"{cls.TABLE}: expected {len(cols)} values, got {len(values)}")
        return cls(**dict(zip(cols, values)))


@dataclass(frozen=True)
class LegacyPatient(LegacyRow):
    TABLE: ClassVar[str] = "patients"

    id: Scalar = None
    patient_unique_id: Scalar = None
    lang_id: Scalar = None
    admission_date: Scalar = None
    patient_name: Scalar = None
    age: Scalar = None
    month: Scalar = None
    image: Scalar = None
    mobileno: Scalar = None
    email: Scalar = None
    dob: Scalar = None
    gender: Scalar = None
    marital_status: Scalar = None
    blood_group: Scalar = None
    address: Scalar = None
    guardian_name: Scalar = None
    guardian_phone: Scalar = None
    guardian_address: Scalar = None
    guardian_email: Scalar = None
    is_active: Scalar = None
    discharged: Scalar = None
    patient_type: Scalar = None
    credit_limit: Scalar = None
    organisation: Scalar = None
    known_allergies: Scalar = None
    old_patient: Scalar = None
    created_at: Scalar = None
    disable_at: Scalar = None
    note: Scalar = None
    is_ipd: Scalar = None
    app_key: Scalar = None


@dataclass(frozen=True)
class LegacyOpd(LegacyRow):
    """One outpatient visit; becomes an Appointment and, when charged, a Bill."""

    TABLE: ClassVar[str] = "opd_details"

    id: Scalar = None
    patient_id: Scalar = None
    opd_no: Scalar = None
    appointment_date: Scalar = None
    case_type: Scalar = None
    casualty: Scalar = None
    symptoms: Scalar = None
    bp: Scalar = None
    height: Scalar = None
    weight: Scalar = None
    pulse: Scalar = None
    temperature: Scalar = None
    respiration: Scalar = None
    known_allergies: Scalar = None
    note_remark: Scalar = None
    refference: Scalar = None
    cons_doctor: Scalar = None
    amount: Scalar = None
    tax: Scalar = None
    payment_mode: Scalar = None
    header_note: Scalar = None
    footer_note: Scalar = None
    generated_by: Scalar = None
    discharged: Scalar = None
    live_consult: Scalar = None


@dataclass(frozen=True)
class LegacyCharge(LegacyRow):
    TABLE: ClassVar[str] = "charges"

    id: Scalar = None
    charge_type: Scalar = None
    charge_category: Scalar = None
    description: Scalar = None
    code: Scalar = None
    standard_charge: Scalar = None
    date: Scalar = None
    status: Scalar = None


LEGACY_TABLES = (LegacyPatient, LegacyOpd, LegacyCharge)
