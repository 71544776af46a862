import re

from pathology_engine.schemas.report import ResolvedParameter

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_group_label(label: str | None) -> str:
    return _WHITESPACE_RE.sub(" ", str(label or "").strip()).lower()


def reorder_parameters_by_group(params: list[ResolvedParameter]) -> list[ResolvedParameter]:
    """Order rows for display: by outer group, then by group heading.

    Outer groups keep their first-seen order and are never merged with each
    other. Inside one outer group, headings differing only in case or spacing
    share one bucket labelled with the first spelling seen; each bucket is
    sorted by ``order``. Rows without a heading follow the buckets.
    """
    outer_order: list[str] = []
    per_outer: dict[str, list[ResolvedParameter]] = {}
    for param in params:
        outer = param.outer_group or ""
        if outer not in per_outer:
            per_outer[outer] = []
            outer_order.append(outer)
        per_outer[outer].append(param)

    ordered: list[ResolvedParameter] = []
    for outer in outer_order:
        buckets: dict[str, tuple[str, list[ResolvedParameter]]] = {}
        ungrouped: list[ResolvedParameter] = []
        for param in per_outer[outer]:
            key = normalize_group_label(param.group_by)
            if not key:
                ungrouped.append(param)
                continue
            if key not in buckets:
                buckets[key] = (param.group_by.strip(), [])
            buckets[key][1].append(param)

        for label, items in buckets.values():
            for item in sorted(items, key=lambda p: p.order or 0):
                item.group_by = label
                item.outer_group = outer
                ordered.append(item)
        for item in ungrouped:
            item.outer_group = outer
            ordered.append(item)
    return ordered
