"""
Process Scan Platform
Tests — process tree scoring, editor actions and pain point merging.

Covers:
    - sync_group_scores / cost_metrics
    - validate_processes / initialise_scores
    - apply_process_action (8 editor actions + error cases)
    - merge_pain_points (human edits survive re-extraction)
"""

from types import SimpleNamespace

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.services import scoring


# ═════════════════════════════════════════════════════════════════════════════
# 1. SCORE ROLL-UP
# ═════════════════════════════════════════════════════════════════════════════

class TestScoreSync:
    """Pain point scores → process groups → categories."""

    def test_pain_point_score_prefers_explicit_score(self):
        assert scoring.pain_point_score({"score": 5, "so_growth": 3}) == 5

    def test_pain_point_score_sums_objectives(self):
        p = {"so_growth": 2, "so_cost": 3, "so_bad": "x", "other": 9}
        assert scoring.pain_point_score(p) == 5

    def test_sync_assigns_totals_and_recomputes_categories(self, processes):
        pain_points = [
            {"name": "A", "assigned_process_group": "Order Entry", "so_growth": 2, "so_cost": 1},
            {"name": "B", "assigned_process_group": "Order Entry", "score": 4},
            {"name": "C", "assigned_process_group": "Invoicing", "so_cost": 3},
        ]
        updated, changed = scoring.sync_group_scores(processes, pain_points)

        assert changed is True
        assert sorted(updated) == ["Invoicing", "Order Entry"]
        order_mgmt, billing = processes["process_categories"]
        assert order_mgmt["process_groups"][0]["score"] == 7
        assert order_mgmt["score"] == 7
        assert billing["score"] == 3

    def test_unassigned_and_zero_scores_are_ignored(self, processes):
        processes["process_categories"][0]["process_groups"][1]["score"] = 2
        processes["process_categories"][0]["score"] = 2
        pain_points = [
            {"name": "A", "assigned_process_group": "Unassigned", "score": 3},
            {"name": "B", "assigned_process_group": "Credit Check", "score": 0},
        ]
        updated, changed = scoring.sync_group_scores(processes, pain_points)

        assert updated == []
        assert changed is False
        # Groups without scored pain points keep their score
        assert processes["process_categories"][0]["process_groups"][1]["score"] == 2

    def test_sync_skips_non_string_groups(self, processes):
        pain_points = [
            {"name": "A", "assigned_process_group": ["Order Entry"], "score": 3},
            {"name": "B", "assigned_process_group": {"name": "Invoicing"}, "score": 2},
            {"name": "C", "assigned_process_group": 5, "score": 1},
            {"name": "D", "assigned_process_group": "Invoicing", "score": 4},
        ]
        updated, changed = scoring.sync_group_scores(processes, pain_points)

        assert updated == ["Invoicing"]
        assert changed is True
        assert processes["process_categories"][0]["score"] == 0
        assert processes["process_categories"][1]["score"] == 4

    def test_sync_is_idempotent(self, processes):
        pain_points = [{"name": "A", "assigned_process_group": "Collections", "score": 2}]
        scoring.sync_group_scores(processes, pain_points)
        updated, changed = scoring.sync_group_scores(processes, pain_points)
        assert updated == []
        assert changed is False

    def test_cost_metrics(self, processes):
        lifecycle = SimpleNamespace(
            categories=processes["process_categories"],
            cost_to_serve=120.0,
            industry_benchmark=100.0,
        )
        pain_points = [
            {"name": "A", "assigned_process_group": "Invoicing", "so_cost": 2, "so_growth": 1},
            {"name": "B", "assigned_process_group": "Unassigned", "so_cost": 3},
        ]
        metrics = scoring.cost_metrics(lifecycle, pain_points)
        assert metrics == {
            "processes": 4,
            "painPoints": 1,
            "points": 3,
            "costToServe": 120.0,
            "industryBenchmark": 100.0,
            "delta": -20.0,
        }

    def test_cost_metrics_defaults_to_zero(self):
        lifecycle = SimpleNamespace(categories=[], cost_to_serve=None, industry_benchmark=None)
        metrics = scoring.cost_metrics(lifecycle, [])
        assert metrics["costToServe"] == 0
        assert metrics["delta"] == 0


# ═════════════════════════════════════════════════════════════════════════════
# 2. GENERATED TREE VALIDATION
# ═════════════════════════════════════════════════════════════════════════════

class TestValidateProcesses:

    def test_valid_tree(self, processes):
        assert scoring.validate_processes(processes) is None

    @pytest.mark.parametrize("data, fragment", [
        ([], "expected an object"),
        ({}, "process_categories must be an array"),
        ({"process_categories": [{"process_groups": []}]}, "missing a name"),
        ({"process_categories": [{"name": "X"}]}, "missing process_groups"),
        ({"process_categories": [{"name": "X", "process_groups": [{"description": "d"}]}]},
         "missing a name"),
        ({"process_categories": [{"name": "X", "process_groups": [{"name": "G"}]}]},
         "missing a description"),
    ])
    def test_invalid_trees(self, data, fragment):
        assert fragment in scoring.validate_processes(data)

    def test_initialise_scores_zeroes_everything(self):
        data = {"process_categories": [{
            "name": " Sales ", "description": "d",
            "process_groups": [{"name": " Quote ", "description": "q", "score": 9}],
        }]}
        tree = scoring.initialise_scores(data)
        category = tree["process_categories"][0]
        assert category["name"] == "Sales"
        assert category["score"] == 0
        assert category["process_groups"][0] == {"name": "Quote", "description": "q", "score": 0}


# ═════════════════════════════════════════════════════════════════════════════
# 3. PROCESS TREE EDITOR
# ═════════════════════════════════════════════════════════════════════════════

class TestProcessActions:
    """apply_process_action() returns an edited copy."""

    def test_original_is_not_mutated(self, processes):
        scoring.apply_process_action(
            processes, "update_score", {"category_index": 0, "group_index": 0, "score": 3},
        )
        assert processes["process_categories"][0]["process_groups"][0]["score"] == 0

    def test_update_score_recomputes_category(self, processes):
        tree = scoring.apply_process_action(
            processes, "update_score", {"category_index": 0, "group_index": 1, "score": "2"},
        )
        category = tree["process_categories"][0]
        assert category["process_groups"][1]["score"] == 2
        assert category["score"] == 2

    def test_update_score_rejects_text(self, processes):
        with pytest.raises(ValidationError, match="Score must be a number"):
            scoring.apply_process_action(
                processes, "update_score", {"category_index": 0, "group_index": 0, "score": "high"},
            )

    def test_update_score_missing_fields(self, processes):
        with pytest.raises(ValidationError, match="Missing required fields for update_score"):
            scoring.apply_process_action(processes, "update_score", {"category_index": 0})

    def test_index_out_of_range(self, processes):
        with pytest.raises(NotFoundError):
            scoring.apply_process_action(
                processes, "update_score", {"category_index": 5, "group_index": 0, "score": 1},
            )
        with pytest.raises(NotFoundError):
            scoring.apply_process_action(
                processes, "update_score", {"category_index": 0, "group_index": 9, "score": 1},
            )

    def test_index_must_be_integer(self, processes):
        with pytest.raises(ValidationError, match="category_index must be an integer"):
            scoring.apply_process_action(processes, "delete_category", {"category_index": "0"})

    def test_create_category_on_empty_tree(self):
        tree = scoring.apply_process_action(
            None, "create_category", {"category": {"name": "Procurement"}},
        )
        assert tree["process_categories"] == [
            {"name": "Procurement", "description": "", "score": 0, "process_groups": []},
        ]

    def test_create_category_requires_name(self, processes):
        with pytest.raises(ValidationError):
            scoring.apply_process_action(processes, "create_category", {"category": {"name": " "}})

    @pytest.mark.parametrize("action, payload", [
        ("create_category", {"category": {"name": ["Sales"]}}),
        ("create_group", {"category_index": 0, "group": {"name": 7}}),
        ("update_group", {"category_index": 0, "group_index": 0, "group": {"name": {"n": 1}}}),
        ("update_category", {"category_index": 0, "category": {"name": "Sales", "description": 3}}),
    ])
    def test_non_string_names_rejected(self, processes, action, payload):
        with pytest.raises(ValidationError, match="must be a string"):
            scoring.apply_process_action(processes, action, payload)

    @pytest.mark.parametrize("score", [float("nan"), float("inf"), "-inf"])
    def test_update_score_rejects_non_finite(self, processes, score):
        with pytest.raises(ValidationError, match="Score must be a number"):
            scoring.apply_process_action(processes, "update_score", {
                "category_index": 0, "group_index": 0, "score": score,
            })

    def test_update_category_partial(self, processes):
        tree = scoring.apply_process_action(
            processes, "update_category",
            {"category_index": 1, "category": {"description": "Billing and cash."}},
        )
        category = tree["process_categories"][1]
        assert category["name"] == "Billing"
        assert category["description"] == "Billing and cash."

    def test_delete_category(self, processes):
        tree = scoring.apply_process_action(processes, "delete_category", {"category_index": 0})
        assert [c["name"] for c in tree["process_categories"]] == ["Billing"]

    def test_create_and_update_group(self, processes):
        tree = scoring.apply_process_action(
            processes, "create_group",
            {"category_index": 1, "group": {"name": "Dunning", "description": "Reminders."}},
        )
        tree = scoring.apply_process_action(
            tree, "update_group",
            {"category_index": 1, "group_index": 2, "group": {"name": "Dunning Runs"}},
        )
        group = tree["process_categories"][1]["process_groups"][2]
        assert group == {"name": "Dunning Runs", "description": "Reminders.", "score": 0}

    def test_delete_group_recomputes_category(self, processes):
        processes["process_categories"][0]["process_groups"][0]["score"] = 4
        processes["process_categories"][0]["process_groups"][1]["score"] = 1
        tree = scoring.apply_process_action(
            processes, "delete_group", {"category_index": 0, "group_index": 0},
        )
        category = tree["process_categories"][0]
        assert [g["name"] for g in category["process_groups"]] == ["Credit Check"]
        assert category["score"] == 1

    def test_reorder_group_between_categories(self, processes):
        processes["process_categories"][0]["process_groups"][0]["score"] = 3
        tree = scoring.apply_process_action(processes, "reorder_group", {"reorder": {
            "source_category_index": 0, "source_group_index": 0,
            "dest_category_index": 1, "dest_group_index": 1,
        }})
        source, dest = tree["process_categories"]
        assert [g["name"] for g in source["process_groups"]] == ["Credit Check"]
        assert [g["name"] for g in dest["process_groups"]] == ["Invoicing", "Order Entry", "Collections"]
        assert source["score"] == 0
        assert dest["score"] == 3

    def test_reorder_group_past_end_appends(self, processes):
        tree = scoring.apply_process_action(processes, "reorder_group", {"reorder": {
            "source_category_index": 0, "source_group_index": 0,
            "dest_category_index": 0, "dest_group_index": 10,
        }})
        names = [g["name"] for g in tree["process_categories"][0]["process_groups"]]
        assert names == ["Credit Check", "Order Entry"]

    def test_unknown_action(self, processes):
        with pytest.raises(ValidationError, match="Invalid action"):
            scoring.apply_process_action(processes, "explode", {})

    def test_list_process_groups_dedupes(self, processes):
        processes["process_categories"][1]["process_groups"].append(
            {"name": "Order Entry", "description": "dup"},
        )
        groups = scoring.list_process_groups(processes)
        assert [g["name"] for g in groups] == ["Order Entry", "Credit Check", "Invoicing", "Collections"]
        assert groups[0]["description"] == "Key in orders."


# ═════════════════════════════════════════════════════════════════════════════
# 4. PAIN POINT MERGE
# ═════════════════════════════════════════════════════════════════════════════

class TestMergePainPoints:

    GROUPS = {"Order Entry", "Invoicing"}

    def test_new_pain_points_get_ids_and_valid_groups(self):
        merged = scoring.merge_pain_points([], [
            {"name": "Slow approvals", "assigned_process_group": "Invoicing"},
            {"name": "Bad data", "assigned_process_group": "Nowhere"},
        ], self.GROUPS)
        assert len(merged) == 2
        assert all(p["id"] for p in merged)
        assert merged[0]["assigned_process_group"] == "Invoicing"
        assert merged[1]["assigned_process_group"] == "Unassigned"

    def test_human_edits_survive_by_name(self):
        existing = [{
            "id": "pp-1", "name": "Slow Approvals", "description": "old",
            "assigned_process_group": "Order Entry", "score": 5, "so_cost": 2,
        }]
        extracted = [{
            "name": "slow approvals", "description": "new wording",
            "assigned_process_group": "Invoicing", "so_cost": 0, "so_growth": 1,
        }]
        merged = scoring.merge_pain_points(existing, extracted, self.GROUPS)

        assert len(merged) == 1
        p = merged[0]
        assert p["id"] == "pp-1"
        assert p["description"] == "new wording"
        assert p["assigned_process_group"] == "Order Entry"
        assert p["score"] == 5
        assert p["so_cost"] == 2
        assert p["so_growth"] == 1

    def test_unassigned_existing_takes_extracted_group(self):
        existing = [{"id": "pp-1", "name": "Rework", "assigned_process_group": "Unassigned"}]
        extracted = [{"id": "pp-1", "name": "Rework loops", "assigned_process_group": "Order Entry"}]
        merged = scoring.merge_pain_points(existing, extracted, self.GROUPS)
        assert merged[0]["assigned_process_group"] == "Order Entry"
        assert merged[0]["name"] == "Rework loops"

    def test_unmentioned_existing_points_are_kept(self):
        existing = [{"id": "pp-1", "name": "Legacy issue", "assigned_process_group": "Invoicing"}]
        merged = scoring.merge_pain_points(existing, [{"name": "Fresh issue"}], self.GROUPS)
        assert [p["name"] for p in merged] == ["Fresh issue", "Legacy issue"]

    def test_non_string_ids_and_groups(self):
        existing = [
            {"id": ["pp-1"], "name": "Rework", "assigned_process_group": {"g": 1}},
            {"id": 42, "name": "Legacy", "assigned_process_group": ["Invoicing"]},
        ]
        extracted = [
            {"id": {"x": 1}, "name": "Rework", "assigned_process_group": ["Order Entry"]},
            {"id": 42, "name": "Fresh", "assigned_process_group": "Invoicing"},
            {"name": ["Not", "a", "name"]},
        ]
        merged = scoring.merge_pain_points(existing, extracted, self.GROUPS)

        assert [p["name"] for p in merged] == ["Rework", "Fresh", "Legacy"]
        assert all(isinstance(p["id"], str) and p["id"] for p in merged)
        assert len({p["id"] for p in merged}) == 3
        assert [p["assigned_process_group"] for p in merged] == ["Unassigned", "Invoicing", "Unassigned"]

    def test_inputs_are_not_mutated(self):
        existing = [{"id": "pp-1", "name": "A", "assigned_process_group": "Gone"}]
        scoring.merge_pain_points(existing, [], self.GROUPS)
        assert existing[0]["assigned_process_group"] == "Gone"
