"""
Process tree scoring and pain point merging.

Pure functions over the JSON structures stored on a Lifecycle and a
PainPointSummary. No DB access; the lifecycle / pain point services load,
call these and persist.

Functions:
    - recompute_category_scores:  category score = sum of its group scores
    - pain_point_score:           score of one pain point (explicit or so_* sum)
    - sync_group_scores:          push pain point scores onto the process groups
    - cost_metrics:               per-lifecycle cost / points rollup
    - validate_processes:         shape check for LLM-generated process trees
    - apply_process_action:       process tree editor (8 actions)
    - merge_pain_points:          merge freshly extracted pain points with human edits
    - list_process_groups:        flattened, de-duplicated group list
"""

import copy
import uuid

from app.core.exceptions import NotFoundError, ValidationError
from app.models.lifecycle import UNASSIGNED_GROUP
from app.utils.helpers import is_number, text_value

OBJECTIVE_PREFIX = "so_"

PROCESS_ACTIONS = (
    "update_score",
    "create_category",
    "update_category",
    "delete_category",
    "create_group",
    "update_group",
    "delete_group",
    "reorder_group",
)


# ── Scores ───────────────────────────────────────────────────────────────────

def _group_total(category: dict) -> float:
    return sum(
        g.get("score") for g in category.get("process_groups") or []
        if is_number(g.get("score"))
    )


def recompute_category_scores(processes: dict) -> dict:
    """Set every category score to the sum of its group scores (in place)."""
    for category in processes.get("process_categories") or []:
        category["score"] = _group_total(category)
    return processes


def objective_points(pain_point: dict) -> float:
    """Sum of the numeric ``so_*`` values of a pain point."""
    return sum(
        value for key, value in pain_point.items()
        if key.startswith(OBJECTIVE_PREFIX) and is_number(value)
    )


def pain_point_score(pain_point: dict) -> float:
    """Explicit ``score`` when numeric, otherwise the sum of its objective scores."""
    if is_number(pain_point.get("score")):
        return pain_point["score"]
    return objective_points(pain_point)


def is_assigned(pain_point: dict) -> bool:
    group = pain_point.get("assigned_process_group")
    return isinstance(group, str) and bool(group) and group != UNASSIGNED_GROUP


def sync_group_scores(processes: dict, pain_points: list[dict]) -> tuple[list[str], bool]:
    """
    Write pain point totals onto the matching process groups (in place).

    Groups with no scored pain point keep their current score. Category
    scores are recomputed from the groups afterwards.

    Returns:
        (names of the groups whose score changed, whether anything changed)
    """
    totals: dict[str, float] = {}
    for pain_point in pain_points or []:
        if not isinstance(pain_point, dict) or not is_assigned(pain_point):
            continue
        score = pain_point_score(pain_point)
        if not score:
            continue
        group = pain_point["assigned_process_group"]
        totals[group] = totals.get(group, 0) + score

    changed = False
    updated_groups = []
    for category in processes.get("process_categories") or []:
        for group in category.get("process_groups") or []:
            name = group.get("name")
            if isinstance(name, str) and name in totals and group.get("score") != totals[name]:
                group["score"] = totals[name]
                updated_groups.append(name)
                changed = True

        category_score = _group_total(category)
        if category.get("score") != category_score:
            category["score"] = category_score
            changed = True

    return updated_groups, changed


def cost_metrics(lifecycle, pain_points: list[dict]) -> dict:
    """Roll up process, pain point and cost figures for one lifecycle."""
    assigned = [p for p in pain_points or [] if isinstance(p, dict) and is_assigned(p)]
    cost_to_serve = lifecycle.cost_to_serve or 0
    benchmark = lifecycle.industry_benchmark or 0
    return {
        "processes": sum(len(c.get("process_groups") or []) for c in lifecycle.categories),
        "painPoints": len(assigned),
        "points": sum(objective_points(p) for p in assigned),
        "costToServe": cost_to_serve,
        "industryBenchmark": benchmark,
        "delta": benchmark - cost_to_serve,
    }


# ── Validation ───────────────────────────────────────────────────────────────

def validate_processes(data) -> str | None:
    """Return an error message when ``data`` is not a usable process tree."""
    if not isinstance(data, dict):
        return "Invalid data structure: expected an object"
    categories = data.get("process_categories")
    if not isinstance(categories, list):
        return "Invalid data structure: process_categories must be an array"

    for ci, category in enumerate(categories):
        if not isinstance(category, dict):
            return f"Category at index {ci} must be an object"
        name = category.get("name")
        if not isinstance(name, str) or not name.strip():
            return f"Category at index {ci} is missing a name"
        groups = category.get("process_groups")
        if not isinstance(groups, list):
            return f"Category '{name}' is missing process_groups array"
        for gi, group in enumerate(groups):
            if not isinstance(group, dict):
                return f"Process group at index {gi} in category '{name}' must be an object"
            group_name = group.get("name")
            if not isinstance(group_name, str) or not group_name.strip():
                return f"Process group at index {gi} in category '{name}' is missing a name"
            if not isinstance(group.get("description"), str):
                return f"Process group '{group_name}' in category '{name}' is missing a description"
    return None


def initialise_scores(data: dict) -> dict:
    """Copy of a generated tree with every category and group scored 0."""
    return {
        "process_categories": [
            {
                "name": category["name"].strip(),
                "description": category.get("description") or "",
                "score": 0,
                "process_groups": [
                    {
                        "name": group["name"].strip(),
                        "description": group["description"],
                        "score": 0,
                    }
                    for group in category["process_groups"]
                ],
            }
            for category in data["process_categories"]
        ]
    }


# ── Process tree editor ──────────────────────────────────────────────────────

def _require(payload: dict, *fields: str, action: str):
    missing = [f for f in fields if payload.get(f) is None]
    if missing:
        raise ValidationError(
            f"Missing required fields for {action}",
            details={f: "required" for f in missing},
        )


def _index(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    return value


def _category(categories: list, index) -> dict:
    index = _index(index, "category_index")
    if not 0 <= index < len(categories):
        raise NotFoundError(resource="Process category", resource_id=index)
    return categories[index]


def _group(category: dict, index) -> dict:
    index = _index(index, "group_index")
    groups = category.setdefault("process_groups", [])
    if not 0 <= index < len(groups):
        raise NotFoundError(resource="Process group", resource_id=index)
    return groups[index]


def _named_item(payload: dict, key: str, action: str) -> dict:
    item = payload.get(key)
    if not isinstance(item, dict):
        raise ValidationError(f"Missing required fields for {action}", details={key: "required"})
    return item


def apply_process_action(processes: dict | None, action: str, payload: dict) -> dict:
    """
    Apply one editor action to a copy of ``processes`` and return the copy.

    Raises:
        ValidationError: unknown action, missing fields or a non-numeric score.
        NotFoundError: category or group index out of range.
    """
    tree = copy.deepcopy(processes) if processes else {}
    categories = tree.setdefault("process_categories", [])
    payload = payload or {}

    if action == "update_score":
        _require(payload, "category_index", "group_index", "score", action=action)
        score = payload["score"]
        if isinstance(score, str):
            try:
                score = float(score)
            except ValueError:
                raise ValidationError("Score must be a number")
            if score.is_integer():
                score = int(score)
        if not is_number(score):
            raise ValidationError("Score must be a number")
        category = _category(categories, payload["category_index"])
        _group(category, payload["group_index"])["score"] = score
        category["score"] = _group_total(category)

    elif action == "create_category":
        item = _named_item(payload, "category", action)
        name = text_value(item, "name")
        if not name:
            raise ValidationError("Missing required fields for create_category", details={"name": "required"})
        categories.append({
            "name": name,
            "description": text_value(item, "description"),
            "score": 0,
            "process_groups": [],
        })

    elif action == "update_category":
        _require(payload, "category_index", action=action)
        item = _named_item(payload, "category", action)
        category = _category(categories, payload["category_index"])
        name = text_value(item, "name")
        if name:
            category["name"] = name
        if "description" in item:
            category["description"] = text_value(item, "description")

    elif action == "delete_category":
        _require(payload, "category_index", action=action)
        category = _category(categories, payload["category_index"])
        categories.remove(category)

    elif action == "create_group":
        _require(payload, "category_index", action=action)
        item = _named_item(payload, "group", action)
        name = text_value(item, "name")
        if not name:
            raise ValidationError("Missing required fields for create_group", details={"name": "required"})
        category = _category(categories, payload["category_index"])
        category.setdefault("process_groups", []).append({
            "name": name,
            "description": text_value(item, "description"),
            "score": 0,
        })

    elif action == "update_group":
        _require(payload, "category_index", "group_index", action=action)
        item = _named_item(payload, "group", action)
        group = _group(_category(categories, payload["category_index"]), payload["group_index"])
        name = text_value(item, "name")
        if name:
            group["name"] = name
        if "description" in item:
            group["description"] = text_value(item, "description")

    elif action == "delete_group":
        _require(payload, "category_index", "group_index", action=action)
        category = _category(categories, payload["category_index"])
        group = _group(category, payload["group_index"])
        category["process_groups"].remove(group)
        category["score"] = _group_total(category)

    elif action == "reorder_group":
        reorder = payload.get("reorder")
        if not isinstance(reorder, dict):
            raise ValidationError("Missing required fields for reorder_group", details={"reorder": "required"})
        _require(
            reorder, "source_category_index", "source_group_index",
            "dest_category_index", "dest_group_index", action=action,
        )
        source = _category(categories, reorder["source_category_index"])
        dest = _category(categories, reorder["dest_category_index"])
        group = _group(source, reorder["source_group_index"])
        dest_index = _index(reorder["dest_group_index"], "dest_group_index")

        source["process_groups"].remove(group)
        dest_groups = dest.setdefault("process_groups", [])
        if dest_index >= len(dest_groups):
            dest_groups.append(group)
        else:
            dest_groups.insert(max(dest_index, 0), group)
        source["score"] = _group_total(source)
        dest["score"] = _group_total(dest)

    else:
        raise ValidationError(
            f"Invalid action: {action}",
            details={"allowed": list(PROCESS_ACTIONS)},
        )

    return tree


def list_process_groups(processes: dict | None) -> list[dict]:
    """Every group of the tree, de-duplicated by name, first occurrence wins."""
    seen = set()
    groups = []
    for category in (processes or {}).get("process_categories") or []:
        for group in category.get("process_groups") or []:
            name = group.get("name")
            if not isinstance(name, str) or not name or name in seen:
                continue
            seen.add(name)
            groups.append({"name": name, "description": group.get("description") or ""})
    return groups


# ── Pain point merge ─────────────────────────────────────────────────────────

def _name_key(pain_point: dict) -> str:
    name = pain_point.get("name")
    return name.strip().lower() if isinstance(name, str) else ""


def merge_pain_points(
    existing: list[dict],
    extracted: list[dict],
    valid_groups: set[str] | list[str],
) -> list[dict]:
    """
    Merge extracted pain points into the existing ones.

    An extracted pain point matches an existing one by ``id`` or by
    case-insensitive name. A match keeps the human-edited fields of the
    existing record: ``assigned_process_group`` (unless unset or Unassigned),
    ``score`` and every ``so_*`` value already set. Unmatched pain points
    get a new id. Existing pain points the extraction did not mention are
    kept. Group assignments that do not name a process group of the
    lifecycle become Unassigned.
    """
    valid = set(valid_groups or [])
    current = [copy.deepcopy(p) for p in existing or [] if isinstance(p, dict)]
    by_id = {p["id"]: p for p in current if _pain_point_id(p)}
    by_name = {_name_key(p): p for p in current if _name_key(p)}

    merged_ids = set()
    result = []
    for item in extracted or []:
        if not isinstance(item, dict) or not _name_key(item):
            continue
        incoming = copy.deepcopy(item)
        match = by_id.get(_pain_point_id(incoming)) or by_name.get(_name_key(incoming))

        if match is not None:
            if id(match) in merged_ids:
                continue
            merged_ids.add(id(match))
            merged = {**incoming, **{k: v for k, v in match.items() if _is_human_field(k, v)}}
            merged["id"] = _pain_point_id(match) or str(uuid.uuid4())
        else:
            merged = incoming
            merged["id"] = str(uuid.uuid4())

        merged["assigned_process_group"] = _valid_group(merged.get("assigned_process_group"), valid)
        result.append(merged)

    for pain_point in current:
        if id(pain_point) not in merged_ids:
            if pain_point.get("id") is not None and not isinstance(pain_point["id"], str):
                pain_point["id"] = str(uuid.uuid4())
            pain_point["assigned_process_group"] = _valid_group(
                pain_point.get("assigned_process_group"), valid,
            )
            result.append(pain_point)
    return result


def _pain_point_id(pain_point: dict) -> str | None:
    value = pain_point.get("id")
    return value if isinstance(value, str) and value else None


def _is_human_field(key: str, value) -> bool:
    if key == "assigned_process_group":
        return isinstance(value, str) and bool(value) and value != UNASSIGNED_GROUP
    if key == "score":
        return value is not None
    if key.startswith(OBJECTIVE_PREFIX):
        return value is not None
    return False


def _valid_group(group, valid: set[str]) -> str:
    if isinstance(group, str) and group in valid:
        return group
    return UNASSIGNED_GROUP
