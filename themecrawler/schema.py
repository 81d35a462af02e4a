"""
Shape checks for job payloads and catalog responses.

Each ``validate_*`` function returns a list of error messages; an empty list
means the data is usable. Unknown extra fields are always accepted.
"""

from numbers import Real
from typing import Any, List


def _is_str(v: Any) -> bool:
    return isinstance(v, str)


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _is_number(v: Any) -> bool:
    return isinstance(v, Real) and not isinstance(v, bool)


def validate_fetch_page_payload(data: Any) -> List[str]:
    """Validate a fetchThemes job payload: ``{"page": int >= 1}``."""
    if not isinstance(data, dict):
        return ["Payload must be an object"]
    if "page" not in data:
        return ["Missing required field: page"]
    page = data["page"]
    if not _is_int(page):
        return ["Field 'page' must be an integer"]
    if page < 1:
        return ["Field 'page' must be >= 1"]
    return []


def _validate_properties(properties: Any, prefix: str) -> List[str]:
    if not isinstance(properties, list):
        return [f"Field '{prefix}' must be a list"]
    errors: List[str] = []
    for i, prop in enumerate(properties):
        where = f"{prefix}[{i}]"
        if not isinstance(prop, dict):
            errors.append(f"Field '{where}' must be an object")
            continue
        for f in ("key", "value"):
            if not _is_str(prop.get(f)):
                errors.append(f"Field '{where}.{f}' must be a string")
    return errors


def _validate_versions(versions: Any) -> List[str]:
    if not isinstance(versions, list):
        return ["Field 'versions' must be a list"]
    if not versions:
        return ["Field 'versions' must not be empty"]
    errors: List[str] = []
    for i, version in enumerate(versions):
        where = f"versions[{i}]"
        if not isinstance(version, dict):
            errors.append(f"Field '{where}' must be an object")
            continue
        if not _is_str(version.get("lastUpdated")):
            errors.append(f"Field '{where}.lastUpdated' must be a string")
        errors.extend(_validate_properties(version.get("properties"), f"{where}.properties"))
    return errors


def _validate_statistics(statistics: Any) -> List[str]:
    if not isinstance(statistics, list):
        return ["Field 'statistics' must be a list"]
    errors: List[str] = []
    for i, stat in enumerate(statistics):
        where = f"statistics[{i}]"
        if not isinstance(stat, dict):
            errors.append(f"Field '{where}' must be an object")
            continue
        if not _is_str(stat.get("statisticName")):
            errors.append(f"Field '{where}.statisticName' must be a string")
        if not _is_number(stat.get("value")):
            errors.append(f"Field '{where}.value' must be a number")
    return errors


def validate_extension(data: Any) -> List[str]:
    """Validate a single extension record from a catalog page."""
    if not isinstance(data, dict):
        return ["Extension must be an object"]

    errors: List[str] = []
    if not _is_str(data.get("extensionName")):
        errors.append("Field 'extensionName' must be a string")

    publisher = data.get("publisher")
    if not isinstance(publisher, dict):
        errors.append("Field 'publisher' must be an object")
    elif not _is_str(publisher.get("publisherName")):
        errors.append("Field 'publisher.publisherName' must be a string")

    errors.extend(_validate_versions(data.get("versions")))
    errors.extend(_validate_statistics(data.get("statistics")))
    return errors


def validate_query_results(data: Any) -> List[str]:
    """
    Validate the envelope of a catalog query response.

    Only ``results[0].extensions`` is consulted; individual extensions are
    checked separately so one bad record cannot reject a whole page.
    """
    if not isinstance(data, dict):
        return ["Response must be an object"]
    results = data.get("results")
    if not isinstance(results, list) or not results:
        return ["Field 'results' must be a non-empty list"]
    first = results[0]
    if not isinstance(first, dict):
        return ["Field 'results[0]' must be an object"]
    if not isinstance(first.get("extensions"), list):
        return ["Field 'results[0].extensions' must be a list"]
    return []
