from pathology_engine.schemas.report import ResolvedParameter, ResultStatus
from pathology_engine.services.age_units import leading_number

DROPDOWN = "dropdown"

INDICATORS: dict[ResultStatus, str] = {
    ResultStatus.NORMAL: "✓",
    ResultStatus.HIGH: "↑",
    ResultStatus.LOW: "↓",
    ResultStatus.CRITICAL: "⚠️",
}


def _normal_labels(text: str) -> list[str]:
    return [label.strip().lower() for label in text.split(",") if label.strip()]


def _classify_dropdown(param: ResolvedParameter, result: str) -> ResultStatus:
    labels = _normal_labels(param.text_value or param.normal_range)
    if len(set(labels)) < 2:
        return ResultStatus.PENDING
    return ResultStatus.NORMAL if result.lower() in labels else ResultStatus.PENDING


def _classify_text(param: ResolvedParameter, result: str) -> ResultStatus:
    expected = (param.text_value or param.normal_range).strip()
    if not expected:
        return ResultStatus.PENDING
    return ResultStatus.NORMAL if result.lower() == expected.lower() else ResultStatus.HIGH


def classify_numeric(value: float, normal_range: str) -> ResultStatus:
    """Grade a number against "min-max", "<max" or ">min". Bounds are inclusive."""
    text = normal_range.strip().lower()
    if "-" in text:
        parts = text.split("-")
        low, high = leading_number(parts[0].strip()), leading_number(parts[1].strip())
        if low is None or high is None:
            return ResultStatus.NORMAL
        if value < low:
            return ResultStatus.CRITICAL if value < low * 0.5 else ResultStatus.LOW
        if value > high:
            return ResultStatus.CRITICAL if value > high * 2 else ResultStatus.HIGH
        return ResultStatus.NORMAL
    if text.startswith("<"):
        high = leading_number(text[1:].strip())
        if high is None:
            return ResultStatus.NORMAL
        return ResultStatus.NORMAL if value < high else ResultStatus.HIGH
    if text.startswith(">"):
        low = leading_number(text[1:].strip())
        if low is None:
            return ResultStatus.NORMAL
        return ResultStatus.NORMAL if value > low else ResultStatus.LOW
    return ResultStatus.NORMAL


def classify(param: ResolvedParameter) -> ResultStatus:
    result = str(param.result or "").strip()
    if not result:
        return ResultStatus.PENDING
    if param.result_type.lower() == DROPDOWN:
        return _classify_dropdown(param, result)
    if param.type == "Text":
        return _classify_text(param, result)
    value = leading_number(result)
    if value is None:
        return ResultStatus.PENDING
    return classify_numeric(value, param.normal_range)


def indicator(status: ResultStatus | str) -> str:
    try:
        return INDICATORS.get(ResultStatus(status), "-")
    except ValueError:
        return "-"
