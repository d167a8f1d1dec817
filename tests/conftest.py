"""
Shared fixtures: an in-memory SQL document store and a small legacy dump.
"""
import mongomock
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from clinic_migration.core.db import create_tables
from clinic_migration.models.legacy import LegacyCharge, LegacyOpd, LegacyPatient
from clinic_migration.store.mongo import MongoStore
from clinic_migration.store.sql import SqlDocumentStore


@pytest.fixture
def store():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    create_tables(engine)
    s = SqlDocumentStore(engine)
    yield s
    s.close()


@pytest.fixture
def mongo_store():
    s = MongoStore(mongomock.MongoClient(tz_aware=True), "clinic_test")
    yield s
    s.close()


@pytest.fixture(params=["sql", "mongo"])
def any_store(request):
    """Each store backend in turn."""
    return request.getfixturevalue("store" if request.param == "sql" else "mongo_store")


def sql_literal(value):
    if value is None:
        return "NULL"
    if isinstance(value, (int, float)):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


def render_row(record) -> str:
    return "(" + ",".join(sql_literal(getattr(record, c)) for c in record.columns()) + ")"


def insert_block(records, extra_rows=()) -> str:
    """One mysqldump-style INSERT statement, one row per line."""
    cls = type(records[0])
    cols = ", ".join(f"`{c}`" for c in cls.columns())
    rows = [render_row(r) for r in records] + list(extra_rows)
    body = ",\n".join(rows) + ";"
    return f"LOCK TABLES `{cls.TABLE}` WRITE;\nINSERT INTO `{cls.TABLE}` ({cols}) VALUES\n{body}\nUNLOCK TABLES;\n"


def ddl(table: str) -> str:
    return (
        f"--\n-- Table structure for table `{table}`\n--\n\n"
        f"DROP TABLE IF EXISTS `{table}`;\n"
        f"CREATE TABLE `{table}` (\n"
        f"  `id` int(11) NOT NULL AUTO_INCREMENT,\n"
        f"  PRIMARY KEY (`id`)\n"
        f") ENGINE=InnoDB DEFAULT CHARSET=utf8;\n\n"
    )


SAMPLE_PATIENTS = [
    LegacyPatient(id=1, patient_unique_id=101, patient_name="Mr. Rahul Verma", age="32 Years",
                  mobileno="+91-98765-43210", email="rahul@example.com", dob="1991-04-12",
                  gender="male", address="12 MG Road", guardian_name="Anita Verma",
                  guardian_phone="9123456789", is_active="yes", known_allergies="Penicillin",
                  created_at="2023-01-05 09:15:00", note="BP patient\nfollow up monthly"),
    LegacyPatient(id=2, patient_unique_id=102, patient_name="Mrs. Sunita O'Brien", age="0",
                  mobileno="12345", dob="0000-00-00", gender="F", is_active="no"),
    LegacyPatient(id=3, patient_name="-", mobileno="9999999999"),
]
SAMPLE_LATE_PATIENTS = [
    LegacyPatient(id=4, patient_unique_id=None, patient_name="Baby Asha", gender="female",
                  mobileno="(080) 2345 6789", is_active="yes"),
]
BROKEN_PATIENT_ROW = "(5,'Broken row')"

SAMPLE_OPD = [
    LegacyOpd(id=10, patient_id=1, opd_no="OPDN10", appointment_date="2023-05-01 11:30:00",
              symptoms="fever", bp="120/80", cons_doctor=4, amount=300.0, payment_mode="UPI"),
    LegacyOpd(id=11, patient_id=2, opd_no="OPDN11", appointment_date="not a date",
              cons_doctor=4, amount=0),
    LegacyOpd(id=12, patient_id=99, opd_no="OPDN12", appointment_date="2023-05-03",
              cons_doctor=9, amount=150.5, tax=18.5, payment_mode="Card"),
]

SAMPLE_CHARGES = [
    LegacyCharge(id=1, charge_type="Pathology", charge_category="CBC", standard_charge=250.0),
    LegacyCharge(id=2, charge_type="LAB tests", charge_category="cbc ", standard_charge=260.0),
    LegacyCharge(id=3, charge_type="X-Ray", charge_category="Chest X-Ray", standard_charge=400.0),
    LegacyCharge(id=4, charge_type="Procedure", charge_category="Dressing", standard_charge=150.0),
    LegacyCharge(id=5, charge_type="Misc", charge_category="", standard_charge=10.0),
]


def build_dump() -> str:
    return "".join([
        "-- MySQL dump 10.13  Distrib 5.7.33\n",
        "/*!40101 SET NAMES utf8 */;\n\n",
        ddl("patients"),
        insert_block(SAMPLE_PATIENTS, extra_rows=[BROKEN_PATIENT_ROW]),
        ddl("opd_details"),
        insert_block(SAMPLE_OPD),
        "-- a second patients block after unrelated DDL\n",
        insert_block(SAMPLE_LATE_PATIENTS),
        ddl("charges"),
        insert_block(SAMPLE_CHARGES),
        "/*!40101 SET CHARACTER_SET_CLIENT=@OLD_CHARACTER_SET_CLIENT */;\n",
    ])


@pytest.fixture
def sample_dump(tmp_path):
    path = tmp_path / "legacy_dump.sql"
    path.write_text(build_dump(), encoding="utf-8")
    return path
