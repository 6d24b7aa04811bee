from datetime import datetime, timezone

from bson import ObjectId

from config import Config
from constants import COLLECTION_SUMMARIES, COLLECTION_WORKS_RECOMMENDED
from services.export_service import (
    COMPLETED_WORKS_COLUMNS,
    EXPENDITURE_COLUMNS,
    MEMBER_SUMMARY_COLUMNS,
    completed_work_csv_row,
    expenditure_csv_row,
    export_completed_works_csv,
    export_expenditures_csv,
    export_member_summaries_csv,
    export_recommended_works_csv,
    recommended_work_csv_row,
    render_csv,
)


def _row(n):
    return {
        "_id": ObjectId(),
        "mpName": f"Member {n}",
        "state": "Kerala",
        "house": "Lok Sabha",
        "lsTerm": 18,
        "description": "Road resurfacing, ward 4",
        "category": "Roads",
        "amountNorm": 1000.0 + n,
        "date": datetime(2024, 5, n + 1, tzinfo=timezone.utc),
        "year": 2024,
        "mp_details": {"name": None, "constituency": "Wayanad", "state": "Kerala", "house": "Lok Sabha"},
    }


def test_csv_row_falls_back_to_joined_member():
    row = expenditure_csv_row({"mpName": None, "mp_details": {"name": "A. Kumar", "constituency": "Thrissur"}})

    assert row["MP Name"] == "A. Kumar"
    assert row["Constituency"] == "Thrissur"
    assert row["Expenditure Amount (₹)"] is None


def test_csv_row_formats_values():
    row = expenditure_csv_row(_row(0))

    assert row["Expenditure Date"] == "2024-05-01"
    assert row["Expenditure Amount (₹)"] == 1000.0
    assert row["Constituency"] == "Wayanad"
    assert row["Lok Sabha Term"] == 18


def test_render_csv_quotes_commas():
    content = render_csv([expenditure_csv_row(_row(0))])
    lines = content.splitlines()

    assert lines[0] == ",".join(EXPENDITURE_COLUMNS)
    assert '"Road resurfacing, ward 4"' in lines[1]


def test_export_flags_truncation(recording_store):
    store = recording_store(responder=lambda c, p: [_row(n) for n in range(3)])

    export = export_expenditures_csv(store, {}, max_rows=2)

    assert export.row_count == 2
    assert export.truncated is True
    assert len(export.content.splitlines()) == 3
    # one extra row is requested to detect truncation
    assert {"$limit": 3} in store.calls[0][1]
    assert export.filename.startswith("mplads_expenditures_")
    assert export.filename.endswith(".csv")


def test_export_request_can_only_lower_the_cap(recording_store, monkeypatch):
    monkeypatch.setattr(Config, "EXPORT_MAX_ROWS", 10)
    store = recording_store(responder=lambda c, p: [_row(0)])

    export_expenditures_csv(store, {"max_rows": 1})
    export_expenditures_csv(store, {"max_rows": 1000})

    assert {"$limit": 2} in store.calls[0][1]
    assert {"$limit": 11} in store.calls[1][1]


def test_export_empty(store):
    export = export_expenditures_csv(store, {"house": "Rajya Sabha"})

    assert export.row_count == 0
    assert export.truncated is False
    assert export.content.splitlines() == [",".join(EXPENDITURE_COLUMNS)]


def _work(n, **fields):
    return {
        "_id": ObjectId(),
        "workId": f"W-{n}",
        "description": "Borewell with hand pump",
        "category": "Drinking Water",
        "mpName": "A. Kumar",
        "state": "Kerala",
        "house": "Lok Sabha",
        "lsTerm": 17,
        "amountNorm": 250000.0,
        "date": datetime(2022, 11, 3, tzinfo=timezone.utc),
        "year": 2022,
        "beneficiaries": 800.0,
        "mp_details": {"name": "A. Kumar", "constituency": "Wayanad", "state": "Kerala", "house": "Lok Sabha"},
        **fields,
    }


def test_completed_work_row():
    row = completed_work_csv_row(_work(1, hasImage=True, averageRating=4.5))

    assert row["Work ID"] == "W-1"
    assert row["Final Amount (₹)"] == 250000.0
    assert row["Completed Date"] == "2022-11-03"
    assert row["Constituency"] == "Wayanad"
    assert row["Has Images"] == "Yes"
    assert row["Average Rating"] == 4.5


def test_recommended_work_row():
    row = recommended_work_csv_row(_work(2, status="Sanctioned"))

    assert row["Recommended Amount (₹)"] == 250000.0
    assert row["Recommendation Date"] == "2022-11-03"
    assert row["Status"] == "Sanctioned"
    assert row["Expected Beneficiaries"] == 800.0
    assert row["Has Images"] == "No"


def test_completed_works_export(recording_store):
    store = recording_store(responder=lambda c, p: [_work(n) for n in range(2)])

    export = export_completed_works_csv(store, {"house": "ls", "max_rows": 5})

    lines = export.content.splitlines()
    assert lines[0] == ",".join(COMPLETED_WORKS_COLUMNS)
    assert lines[1].startswith("W-0,Borewell with hand pump,Drinking Water,A. Kumar,Wayanad,")
    assert export.row_count == 2
    assert export.truncated is False
    assert export.filename.startswith("mplads_completed_works_")
    assert {"$limit": 6} in store.calls[0][1]


def test_recommended_works_export_excludes_completed(recording_store):
    store = recording_store(responder=lambda c, p: [_work(n) for n in range(3)])

    export = export_recommended_works_csv(store, {"has_payments": True}, max_rows=2)

    collection, pipeline = store.calls[0]
    assert collection == COLLECTION_WORKS_RECOMMENDED
    assert pipeline[1]["$lookup"]["from"] == "works_completed"
    assert export.row_count == 2
    assert export.truncated is True
    assert export.filename.startswith("mplads_recommended_works_")


def test_member_summary_export(recording_store):
    rows = [{
        "id": ObjectId(),
        "mpName": "B. Singh",
        "constituency": "Patna Sahib",
        "state": "Bihar",
        "house": "Lok Sabha",
        "lsTerm": 18,
        "allocatedAmount": 50000000.0,
        "totalExpenditure": 12500000.0,
        "utilizationPercentage": 25.0,
        "avgRating": None,
    }]
    store = recording_store(responder=lambda c, p: rows)

    export = export_member_summaries_csv(store, {"min_utilization": 10.0})

    collection, pipeline = store.calls[0]
    assert collection == COLLECTION_SUMMARIES
    assert pipeline[2] == {"$sort": {"_sortValue": -1, "mpName": 1, "_id": 1}}
    lines = export.content.splitlines()
    assert lines[0] == ",".join(MEMBER_SUMMARY_COLUMNS)
    assert lines[1].startswith("B. Singh,Patna Sahib,Bihar,Lok Sabha,18,50000000.0,12500000.0,25.0,")
    assert lines[1].endswith(",")
    assert export.filename.startswith("mplads_mp_summary_")
