import json
import re
from pathlib import Path
from typing import Any, List, Optional


_fenced_re = re.compile(r"```(?:json)?\s*(.+?)```", re.DOTALL)


def read_jsonl(path: Path) -> List[dict]:
    data: List[dict] = []
    with Path(path).open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            data.append(json.loads(line))
    return data


def extract_json_object(content: str) -> Optional[dict]:
    """Pull a JSON object out of model output, tolerating ``` fences."""
    if not content:
        return None
    fenced = _fenced_re.search(content)
    payload = fenced.group(1) if fenced else content
    payload = payload.strip()
    if not payload.startswith("{"):
        start, end = payload.find("{"), payload.rfind("}")
        if start < 0 or end <= start:
            return None
        payload = payload[start : end + 1]
    try:
        data: Any = json.loads(payload)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def strip_quotes(text: str) -> str:
    s = text.strip()
    for left, right in (('"', '"'), ("'", "'"), ("“", "”"), ("«", "»")):
        if len(s) >= 2 and s.startswith(left) and s.endswith(right):
            return s[1:-1].strip()
    return s
