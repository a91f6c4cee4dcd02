import json


def emit(obj: object) -> None:
    """Write a JSON document for the UI shell on stdout."""
    print(json.dumps(obj, ensure_ascii=False))
