"""
Tests for field cleaning and the entity transformers
"""
from datetime import datetime, timezone
from bson import ObjectId
from clinic_migration.load.crosswalk import Crosswalk
from clinic_migration.models.legacy import LegacyCharge, LegacyOpd, LegacyPatient
from clinic_migration.transforms.cleaning import (
    clean_name,
    clean_phone,
    format_time,
    normalize_gender,
    normalize_payment_mode,
    parse_date,
    parse_datetime,
    parse_timestamp,
    to_age,
    to_float,
    to_utc,
)
from clinic_migration.transforms.transform_charges import classify_charge, dedupe_service_items, transform_charges
from clinic_migration.transforms.transform_opd import transform_opd
from clinic_migration.transforms.transform_patients import transform_patient, transform_patients

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_clean_name_strips_honorifics():
    assert clean_name("Dr. Ankita Sharma") == "Ankita Sharma"
    assert clean_name("Ankita Sharma") == "Ankita Sharma"
    assert clean_name("mrs. Sunita") == "Sunita"
    assert clean_name("Baby Asha") == "Asha"
    assert clean_name("Master Rohan") == "Rohan"
    assert clean_name("Babita Rao") == "Babita Rao"
    assert clean_name("  ") == "Unknown"
    assert clean_name(None) == "Unknown"


def test_clean_phone():
    assert clean_phone("+91-98765-43210") == "9876543210"
    assert clean_phone("12345") is None
    assert clean_phone(None) is None
    assert clean_phone("9876543210") == "9876543210"


def test_normalize_gender():
    assert normalize_gender("male") == "Male"
    assert normalize_gender("F") == "Female"
    assert normalize_gender("trans") == "Other"
    assert normalize_gender("") is None


def test_dates_and_times():
    assert parse_datetime("0000-00-00") is None
    assert parse_datetime("0000-00-00 00:00:00") is None
    assert parse_datetime("2023-05-01 11:30:00") == datetime(2023, 5, 1, 11, 30)
    assert parse_datetime("garbage") is None
    assert parse_date("2023-05-01 11:30:00") == datetime(2023, 5, 1, tzinfo=timezone.utc)
    assert format_time("2023-05-01 14:05:00") == "14:05"
    assert format_time("2023-05-01") == "10:00"
    assert format_time("garbage") == "10:00"
    assert format_time(None) == "10:00"


def test_numbers():
    assert to_float("12.5") == 12.5
    assert to_float("abc") == 0.0
    assert to_float(None) == 0.0
    assert to_age("32 Years") == 32
    assert to_age(0) is None
    assert to_age("unknown") is None


def test_payment_mode():
    assert normalize_payment_mode("UPI") == "upi"
    assert normalize_payment_mode("Debit Card") == "card"
    assert normalize_payment_mode("Cash/Card") == "cash"
    assert normalize_payment_mode(None) == "cash"


def test_transform_patient_shape():
    row = LegacyPatient(id=7, patient_unique_id=42, patient_name="Mr. Rahul Verma", age="32 Years",
                        mobileno="+91-98765-43210", gender="male", dob="0000-00-00",
                        guardian_phone="123", known_allergies="Dust", is_active="Yes")
    doc = transform_patient(row, 0, NOW)
    assert doc["patientId"] == "PAT0042"
    assert doc["name"] == "Rahul Verma"
    assert doc["phone"] == "9876543210"
    assert doc["dateOfBirth"] is None
    assert doc["emergencyContact"] == {"name": None, "phone": None, "relation": "Guardian"}
    assert doc["medicalHistory"]["allergies"] == ["Dust"]
    assert doc["isActive"] is True
    assert doc["legacyId"] == 7
    assert doc["createdAt"] == NOW


def test_placeholder_patients_are_skipped():
    rows = [
        LegacyPatient(id=1, patient_name="-"),
        LegacyPatient(id=2, patient_name=""),
        LegacyPatient(id=3, patient_name="Asha"),
        LegacyPatient(id=4, patient_name="Ravi"),
    ]
    docs = transform_patients(rows, NOW)
    assert [d["legacyId"] for d in docs] == [3, 4]
    assert [d["patientId"] for d in docs] == ["PAT1000", "PAT1001"]


def test_opd_with_amount_produces_paid_bill():
    patient_id, doctor_id = ObjectId(), ObjectId()
    row = LegacyOpd(id=10, patient_id=1, opd_no="OPDN10", appointment_date="2023-05-01 11:30:00",
                    cons_doctor=4, amount=300.0, tax=18.0, payment_mode="UPI", bp="120/80")
    apt, bill = transform_opd(row, Crosswalk("patient", {1: patient_id}),
                              Crosswalk("doctor", {4: doctor_id}), NOW)

    assert apt["patientId"] == patient_id
    assert apt["doctorId"] == doctor_id
    assert apt["appointmentId"] == "OPDN10"
    assert apt["timeSlot"]["start"] == "11:30"
    assert apt["vitals"]["bp"] == "120/80"
    assert apt["status"] == "completed"

    assert bill["paymentStatus"] == "paid"
    assert bill["dueAmount"] == 0
    assert bill["grandTotal"] == bill["paidAmount"] == 318.0
    assert bill["patientId"] == apt["patientId"]
    assert bill["doctorId"] == apt["doctorId"]
    assert bill["legacyId"] == apt["legacyId"] == 10
    assert bill["billNo"] == "BILL-OPDN10"
    assert bill["paymentMode"] == "upi"
    assert bill["items"][0]["amount"] == 300.0


def test_opd_without_positive_amount_has_no_bill():
    for amount in (0, None, "n/a", -5):
        row = LegacyOpd(id=11, patient_id=1, amount=amount, appointment_date="bad")
        apt, bill = transform_opd(row, Crosswalk("patient"), Crosswalk("doctor"), NOW)
        assert bill is None
        assert apt["patientId"] is None
        assert apt["appointmentDate"] is None
        assert apt["timeSlot"]["start"] == "10:00"


def test_classify_charge():
    assert classify_charge("Pathology") == "laboratory"
    assert classify_charge("LAB") == "laboratory"
    assert classify_charge("Radiology") == "radiology"
    assert classify_charge("X-Ray") == "radiology"
    assert classify_charge("xray") == "radiology"
    assert classify_charge("Minor Procedure") == "procedure"
    assert classify_charge("Room") == "other"
    assert classify_charge(None) == "other"


def test_charge_dedup_is_case_insensitive():
    rows = [
        LegacyCharge(id=1, charge_type="Pathology", charge_category="CBC", standard_charge=250.0),
        LegacyCharge(id=2, charge_type="lab", charge_category="cbc", standard_charge=260.0),
        LegacyCharge(id=3, charge_type="Radiology", charge_category="CBC", standard_charge=1.0),
        LegacyCharge(id=4, charge_type="lab", charge_category="", standard_charge=1.0),
    ]
    items = transform_charges(rows, NOW)
    assert [(i["legacyId"], i["category"]) for i in items] == [(1, "laboratory"), (3, "radiology")]
    assert items[0]["rate"] == 250.0
    assert dedupe_service_items([]) == []


def test_malformed_legacy_foreign_key_resolves_to_none():
    """A garbage foreign key leaves the reference empty instead of raising"""
    row = LegacyOpd(id=1, patient_id="--5", cons_doctor="²", amount=100.0)
    apt, bill = transform_opd(row, Crosswalk("patient", {5: ObjectId()}), Crosswalk("doctor"), NOW)
    assert apt["patientId"] is None
    assert apt["doctorId"] is None
    assert apt["legacyPatientId"] == "--5"
    assert bill["patientId"] is None


def test_legacy_timestamps_are_stored_as_utc():
    """Legacy times are clinic-local; stored instants are aware UTC"""
    assert to_utc(datetime(2023, 5, 1, 11, 30)) == datetime(2023, 5, 1, 6, 0, tzinfo=timezone.utc)
    assert to_utc(datetime(2023, 5, 1, 11, 30), "UTC") == datetime(2023, 5, 1, 11, 30, tzinfo=timezone.utc)
    assert to_utc(None) is None
    assert parse_timestamp("2023-05-01 11:30:00", "Europe/London") == datetime(2023, 5, 1, 10, 30, tzinfo=timezone.utc)
    assert parse_timestamp("0000-00-00 00:00:00") is None


def test_opd_dates_are_utc_but_slot_is_local():
    row = LegacyOpd(id=10, opd_no="OPDN10", appointment_date="2023-05-01 11:30:00", amount=100.0)
    apt, bill = transform_opd(row, Crosswalk("patient"), Crosswalk("doctor"), NOW)
    assert apt["appointmentDate"] == datetime(2023, 5, 1, 6, 0, tzinfo=timezone.utc)
    assert apt["appointmentDate"].utcoffset().total_seconds() == 0
    assert apt["timeSlot"]["start"] == "11:30"
    assert bill["billDate"] == apt["appointmentDate"]

    patient = transform_patient(LegacyPatient(id=1, patient_name="Asha", created_at="2023-01-05 09:15:00",
                                              dob="1991-04-12"), 0, NOW, tz="UTC")
    assert patient["createdAt"] == datetime(2023, 1, 5, 9, 15, tzinfo=timezone.utc)
    assert patient["dateOfBirth"] == datetime(1991, 4, 12, tzinfo=timezone.utc)
