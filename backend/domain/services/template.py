import re
from typing import Dict, List

# {name} 形式のプレースホルダ。入れ子は不可、空の {} も対象
VARIABLE_PATTERN = re.compile(r"\{([^{}]*)\}")

def extract_variables(content: str) -> List[str]:
    """出現順・重複なしで変数名を返す (前後の空白は除去)"""
    seen = set()
    result = []
    for match in VARIABLE_PATTERN.finditer(content):
        name = match.group(1).strip()
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result

def fill_template(content: str, values: Dict[str, str]) -> str:
    """
    値が空でない変数だけを置換する。未入力の変数は {name} のまま残す。
    """
    def replace(match: re.Match) -> str:
        name = match.group(1).strip()
        value = values.get(name)
        if value is None or not str(value).strip():
            return match.group(0)
        return str(value).strip()

    return VARIABLE_PATTERN.sub(replace, content)

def has_variables(content: str) -> bool:
    return VARIABLE_PATTERN.search(content) is not None
