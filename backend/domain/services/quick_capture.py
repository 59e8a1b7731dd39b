import re
from typing import Dict, List, Tuple

from domain.constants import VISIBILITY_PRIVATE

TITLE_MAX_LENGTH = 40
TAG_PATTERN = re.compile(r"#([^\s#]+)")

# 上から順に判定する
PHASE_KEYWORDS = [
    ("Debug", re.compile(r"バグ|エラー|error|debug|修正|fix|直し")),
    ("Design", re.compile(r"設計|design|ui|ux|レイアウト|画面|デザイン")),
    ("Implementation", re.compile(r"実装|implement|コード|code|関数|function|component|コンポーネント")),
    ("Planning", re.compile(r"企画|plan|要件|prd|アイデア|idea|仕様")),
    ("Release", re.compile(r"deploy|リリース|release|公開|vercel|ビルド|build")),
]

def guess_phase(text: str) -> str:
    lower = text.lower()
    for phase, pattern in PHASE_KEYWORDS:
        if pattern.search(lower):
            return phase
    return "Other"

def extract_inline_tags(text: str) -> Tuple[str, List[str]]:
    tags = TAG_PATTERN.findall(text)
    cleaned = TAG_PATTERN.sub("", text).strip()
    return cleaned, tags

def make_title(content: str) -> str:
    first_line = content.split("\n")[0]
    if len(first_line) > TITLE_MAX_LENGTH:
        return first_line[:TITLE_MAX_LENGTH] + "…"
    return first_line

def build_quick_capture(text: str) -> Dict:
    """
    1行メモからプロンプト作成用の入力を組み立てる。空なら ValueError。
    """
    trimmed = text.strip()
    if not trimmed:
        raise ValueError("empty memo")

    content, tags = extract_inline_tags(trimmed)
    if not content:
        raise ValueError("memo has no content besides tags")

    return {
        "title": make_title(content),
        "content": content,
        "tags": tags,
        "phase": guess_phase(content),
        "visibility": VISIBILITY_PRIVATE,
    }
