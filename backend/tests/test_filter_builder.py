from bson import ObjectId

from config import Config
from utils.filter_builder import (
    build_house_gate,
    build_member_search_condition,
    build_mp_id_condition,
    build_search_condition,
    build_state_condition,
    combine_conditions,
    resolve_term_selection,
    term_condition,
)


def test_resolve_term_selection_variants():
    assert resolve_term_selection("17") == 17
    assert resolve_term_selection(18) == 18
    assert resolve_term_selection(" BOTH ") == "both"


def test_resolve_term_selection_falls_back_to_default(monkeypatch):
    monkeypatch.setattr(Config, "DEFAULT_LS_TERM", "17")

    assert resolve_term_selection(None) == 17
    assert resolve_term_selection("16") == 17
    assert resolve_term_selection("abc") == 17
    assert resolve_term_selection(True) == 17
    assert resolve_term_selection(None, default="both") == "both"


def test_term_condition_both_is_membership():
    assert term_condition("both") == {"$in": [17, 18]}
    assert term_condition(17) == 17


def test_house_gate_lok_sabha_is_term_scoped():
    assert build_house_gate("Lok Sabha", 17) == {"house": "Lok Sabha", "lsTerm": 17}
    assert build_house_gate("lok_sabha", "both") == {
        "house": "Lok Sabha",
        "lsTerm": {"$in": [17, 18]},
    }


def test_house_gate_rajya_sabha_ignores_term():
    assert build_house_gate("Rajya Sabha", 17) == {"house": "Rajya Sabha"}
    assert build_house_gate("RS", "both") == {"house": "Rajya Sabha"}


def test_house_gate_both_houses_never_spans_all_ls_terms():
    gate = build_house_gate(None, 18)

    assert gate == {
        "$or": [
            {"house": "Rajya Sabha"},
            {"house": "Lok Sabha", "lsTerm": 18},
        ]
    }
    assert build_house_gate("Both Houses", 18) == gate
    assert build_house_gate("all", 18) == gate


def test_state_condition_is_literal_case_insensitive():
    assert build_state_condition("Tamil Nadu") == {
        "state": {"$regex": "Tamil\\ Nadu", "$options": "i"}
    }
    assert build_state_condition("   ") is None
    assert build_state_condition(None) is None


def test_mp_id_condition_matches_string_and_object_id():
    oid = ObjectId()
    condition = build_mp_id_condition(str(oid))

    assert condition == {"$or": [{"mp_id": str(oid)}, {"mp_id": oid}]}
    assert build_mp_id_condition("legacy-42") == {"mp_id": "legacy-42"}
    assert build_mp_id_condition("  ") is None


def test_search_condition_escapes_metacharacters():
    condition = build_search_condition("a.b*c", ["work", "vendor"])

    assert condition == {
        "$or": [
            {"work": {"$regex": "a\\.b\\*c", "$options": "i"}},
            {"vendor": {"$regex": "a\\.b\\*c", "$options": "i"}},
        ]
    }
    assert build_search_condition("", ["work"]) is None


def test_member_search_matches_name_words_in_any_order():
    condition = build_member_search_condition("kumar ravi")

    assert condition["$or"][0] == {"mpName": {"$regex": "kumar\\ ravi", "$options": "i"}}
    assert condition["$or"][1] == {
        "$and": [
            {"mpName": {"$regex": "kumar", "$options": "i"}},
            {"mpName": {"$regex": "ravi", "$options": "i"}},
        ]
    }
    assert condition["$or"][2:] == [
        {"constituency": {"$regex": "kumar\\ ravi", "$options": "i"}},
        {"state": {"$regex": "kumar\\ ravi", "$options": "i"}},
    ]


def test_member_search_single_word_has_no_word_clause():
    condition = build_member_search_condition("Goa")

    assert len(condition["$or"]) == 3
    assert build_member_search_condition(None) is None


def test_combine_conditions_drops_empty_and_wraps_in_and():
    gate = build_house_gate(None, 18)
    search = build_search_condition("road", ["work"])

    assert combine_conditions([]) == {}
    assert combine_conditions([None, {}, gate]) == gate
    # Two $or clauses must not be merged into one dict
    assert combine_conditions([search, gate]) == {"$and": [search, gate]}
