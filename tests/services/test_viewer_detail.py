from __future__ import annotations

from pathlib import Path

import pytest

from awms.core.errors import ExportError
from awms.services.viewer import DetailView, page_count, row_matches
from awms_io.schema import SheetData
from awms_persist.schemas.filerec import FileRecord


def _record() -> FileRecord:
    sheet_a = SheetData(
        name="A",
        columns=["No", "Name"],
        rows=[{"No": idx, "Name": f"Worker {idx}"} for idx in range(1, 26)],
    )
    sheet_b = SheetData(
        name="B",
        columns=["Task", "Owner"],
        rows=[
            {"Task": "Audit", "Owner": "Al"},
            {"Task": "Review", "Owner": "Bo"},
            {"Task": "Ship", "Owner": None},
        ],
    )
    return FileRecord.build("roster.xlsx", [sheet_a, sheet_b], b"PK", uploaded_at=0).with_id(1)


def test_pagination_per_sheet() -> None:
    view = DetailView(_record(), page_size=10)

    assert view.page_count == 3
    assert [len(rows) for rows in view.pages()] == [10, 10, 5]

    view.select_sheet(1)
    assert view.page_count == 1
    assert [len(rows) for rows in view.pages()] == [3]


def test_pages_concatenate_to_filtered_rows() -> None:
    view = DetailView(_record(), page_size=7)
    view.set_filter("worker 1")

    flattened = [row for rows in view.pages() for row in rows]

    assert flattened == view.filtered
    assert view.filtered_count == 11
    assert all(len(rows) <= 7 for rows in view.pages())


def test_navigation_is_clamped() -> None:
    view = DetailView(_record(), page_size=10)

    assert view.prev_page() == 1
    assert view.next_page() == 2
    assert view.next_page() == 3
    assert view.next_page() == 3
    assert view.go_to_page(99) == 3
    assert view.go_to_page(-4) == 1
    assert view.page_rows(3)[0] == {"No": 21, "Name": "Worker 21"}


def test_filter_and_page_size_reset_page() -> None:
    view = DetailView(_record(), page_size=10)
    view.go_to_page(3)

    view.set_filter("  WORKER 2  ")
    assert view.page == 1
    assert view.query == "WORKER 2"
    assert [row["No"] for row in view.filtered] == [2, 20, 21, 22, 23, 24, 25]

    view.go_to_page(1)
    view.set_page_size(5)
    assert view.page == 1
    assert view.page_count == 2
    with pytest.raises(ValueError):
        view.set_page_size(0)


def test_selecting_sheet_clears_query() -> None:
    view = DetailView(_record(), page_size=10)
    view.set_filter("nothing matches this")
    assert view.filtered == []
    assert view.page_count == 1
    assert view.page_rows() == []

    view.select_sheet_by_name("B")

    assert view.query == ""
    assert view.filtered_count == 3
    with pytest.raises(KeyError):
        view.select_sheet_by_name("Missing")
    with pytest.raises(IndexError):
        view.select_sheet(5)


def test_row_matches_uses_json_text() -> None:
    row = {"Name": "Al", "Active": True, "Note": None}

    assert row_matches(row, "al")
    assert row_matches(row, "true")
    assert row_matches(row, "null")
    assert row_matches(row, '"name":"al"')
    assert row_matches(row, "   ")
    assert not row_matches(row, "bo")


def test_page_count_never_below_one() -> None:
    assert page_count(0, 10) == 1
    assert page_count(25, 10) == 3
    assert page_count(30, 10) == 3


def test_csv_export_quotes_values() -> None:
    sheet = SheetData(
        name="People",
        columns=["Name", "Age"],
        rows=[{"Name": "Al", "Age": 30}, {"Name": "Bo, Jr", "Age": "N/A"}],
    )
    view = DetailView(FileRecord.build("people.xlsx", [sheet], b"PK", uploaded_at=0))

    assert view.export_csv() == 'Name,Age\n"Al","30"\n"Bo, Jr","N/A"\n'

    view.set_filter("jr")
    assert view.export_csv() == 'Name,Age\n"Bo, Jr","N/A"\n'


def test_csv_export_escapes_quotes_and_renders_empty_cells() -> None:
    sheet = SheetData(name="S", columns=["Quote", "Blank"], rows=[{"Quote": 'say "hi"', "Blank": None}])
    view = DetailView(FileRecord.build("s.xlsx", [sheet], b"PK", uploaded_at=0))

    assert view.export_csv() == 'Quote,Blank\n"say ""hi""",""\n'


def test_csv_export_ignores_pagination_and_writes_file(tmp_path: Path) -> None:
    view = DetailView(_record(), page_size=10)
    view.go_to_page(2)

    target = view.export_csv_to(tmp_path)

    assert target.name == "roster.xlsx-A.csv"
    lines = target.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "No,Name"
    assert len(lines) == 26


def test_empty_export_raises() -> None:
    view = DetailView(_record())
    view.set_filter("zzz")

    with pytest.raises(ExportError, match="No rows to export"):
        view.export_csv()


def test_to_frame_follows_filter() -> None:
    view = DetailView(_record())
    view.select_sheet(1)
    view.set_filter("al")

    frame = view.to_frame()

    assert list(frame.columns) == ["Task", "Owner"]
    assert frame["Task"].tolist() == ["Audit"]


def test_returned_rows_do_not_alias_the_record() -> None:
    record = _record()
    view = DetailView(record, page_size=10)

    view.filtered[0]["Name"] = "changed"
    view.page_rows()[0]["No"] = -1
    view.pages()[0][0]["Name"] = "changed again"

    assert record.sheets[0].rows[0] == {"No": 1, "Name": "Worker 1"}
    assert view.page_rows()[0] == {"No": 1, "Name": "Worker 1"}
    assert "changed" not in view.export_csv()
