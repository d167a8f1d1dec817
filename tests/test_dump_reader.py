"""
Tests for streaming table rows out of a legacy dump
"""
import pandas as pd
import pytest
from clinic_migration.core.errors import DumpNotFoundError
from clinic_migration.extract.dump_reader import check_dump, iter_table_rows, strip_row
from clinic_migration.extract.extract_legacy import read_charges, read_opd_details, read_patients


def write(tmp_path, text):
    path = tmp_path / "dump.sql"
    path.write_text(text, encoding="utf-8")
    return path


def test_strip_row_terminators():
    assert strip_row("(1,'a'),") == "1,'a'"
    assert strip_row("(1,'a');") == "1,'a'"
    assert strip_row("  (1,'a')  ") == "1,'a'"


def test_only_requested_table_is_captured(tmp_path):
    """Rows of other tables and DDL between blocks are ignored"""
    path = write(tmp_path, (
        "INSERT INTO `patients` VALUES\n"
        "(1,'a'),\n"
        "(2,'b');\n"
        "INSERT INTO `charges` VALUES\n"
        "(9,'x');\n"
        "CREATE TABLE `t` (\n"
        "(99,'not a row')\n"
        ");\n"
        "INSERT INTO `patients` VALUES\n"
        "(3,'c');\n"
    ))
    assert list(iter_table_rows(path, "patients")) == ["1,'a'", "2,'b'", "3,'c'"]
    assert list(iter_table_rows(path, "charges")) == ["9,'x'"]


def test_comment_closes_capture(tmp_path):
    path = write(tmp_path, (
        "INSERT INTO patients VALUES\n"
        "(1,'a');\n"
        "-- dump completed\n"
        "(2,'stray');\n"
    ))
    assert list(iter_table_rows(path, "patients")) == ["1,'a'"]


def test_multiline_quoted_value_is_joined(tmp_path):
    path = write(tmp_path, (
        "INSERT INTO `patients` VALUES\n"
        "(1,'first line\n"
        "second line',3),\n"
        "(2,'single',4);\n"
    ))
    rows = list(iter_table_rows(path, "patients"))
    assert rows == ["1,'first line\nsecond line',3", "2,'single',4"]


def test_insert_marker_inside_data_does_not_toggle(tmp_path):
    path = write(tmp_path, (
        "INSERT INTO `patients` VALUES\n"
        "(1,'note: INSERT INTO charges later'),\n"
        "(2,'b');\n"
    ))
    assert len(list(iter_table_rows(path, "patients"))) == 2


def test_missing_dump_fails_before_iteration(tmp_path):
    """A missing file raises at call time, not on first next()"""
    with pytest.raises(DumpNotFoundError):
        iter_table_rows(tmp_path / "nope.sql", "patients")
    with pytest.raises(FileNotFoundError):
        check_dump(tmp_path / "nope.sql")


def test_read_patients_rejects_bad_rows(sample_dump, tmp_path):
    """The malformed row is dropped and written to the drop log"""
    logs = tmp_path / "logs"
    patients = read_patients(sample_dump, logs_dir=logs)
    assert [p.id for p in patients] == [1, 2, 3, 4]
    assert patients[1].patient_name == "Mrs. Sunita O'Brien"
    assert patients[0].note == "BP patient\nfollow up monthly"

    drop_log = logs / "patients_rejected.csv"
    assert drop_log.exists()
    rejected = pd.read_csv(drop_log)
    assert len(rejected) == 1
    assert rejected.loc[0, "expected"] == 31
    assert rejected.loc[0, "found"] == 2


def test_read_other_tables(sample_dump, tmp_path):
    opd = read_opd_details(sample_dump, logs_dir=tmp_path)
    charges = read_charges(sample_dump, logs_dir=tmp_path)
    assert [o.id for o in opd] == [10, 11, 12]
    assert opd[0].amount == 300.0
    assert opd[2].tax == 18.5
    assert len(charges) == 5
    assert not (tmp_path / "opd_details_rejected.csv").exists()


def charge_line(i):
    return f"({i},'Lab','Item {i}','routine','C{i}',100.0,NULL,'active')"


def test_truncated_row_loses_only_itself(tmp_path):
    """An unclosed literal must not swallow the valid rows after it"""
    lines = [charge_line(1), "(2,'Lab','Truncated row,"] + [charge_line(i) for i in range(3, 41)]
    path = write(tmp_path, "INSERT INTO `charges` VALUES\n" + ",\n".join(lines) + ";\n")

    charges = read_charges(path, logs_dir=tmp_path)
    assert [c.id for c in charges] == [1] + list(range(3, 41))
    rejected = pd.read_csv(tmp_path / "charges_rejected.csv")
    assert rejected["row_number"].tolist() == [2]


def test_backslash_escape_does_not_absorb_next_row(tmp_path):
    path = write(tmp_path, (
        "INSERT INTO `patients` VALUES\n"
        "(1,'a'),\n"
        "(2,'O\\'Brien'),\n"
        "(3,'c');\n"
    ))
    assert list(iter_table_rows(path, "patients")) == ["1,'a'", "2,'O\\'Brien'", "3,'c'"]


def test_unterminated_literal_at_end_of_file(tmp_path):
    path = write(tmp_path, "INSERT INTO `patients` VALUES\n(1,'never closed\ntrailing text\n")
    assert list(iter_table_rows(path, "patients")) == ["1,'never closed"]


def test_join_with_wrong_value_count_is_undone(tmp_path):
    good = write(tmp_path, "INSERT INTO `patients` VALUES\n(1,'a\nb',2);\n")
    assert list(iter_table_rows(good, "patients", expected=2)) == ["1,'a\nb',2"]

    bad = write(tmp_path, "INSERT INTO `patients` VALUES\n(1,'a\nb',2,3),\n(4,'d');\n")
    assert list(iter_table_rows(bad, "patients", expected=2)) == ["1,'a", "4,'d'"]
