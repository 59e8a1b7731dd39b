from typing import Dict

from domain.constants import TEMPLATE_VALUES_KEY, TEMPLATE_CACHE_LIMIT
from infra.local_state import LocalState

class TemplateValueCache:
    """
    テンプレート変数の入力値をプロンプトごとに覚えておく。
    上限を超えたら古く登録されたプロンプトから捨てる (再保存しても順番は変わらない)。
    """

    def __init__(self, local_state: LocalState, limit: int = TEMPLATE_CACHE_LIMIT):
        self.local_state = local_state
        self.limit = limit

    def _load_all(self) -> Dict[str, Dict[str, str]]:
        stored = self.local_state.get(TEMPLATE_VALUES_KEY)
        return dict(stored) if isinstance(stored, dict) else {}

    def save(self, prompt_id: str, values: Dict[str, str]):
        stored = self._load_all()
        stored[prompt_id] = dict(values)
        overflow = len(stored) - self.limit
        if overflow > 0:
            for key in list(stored)[:overflow]:
                del stored[key]
        self.local_state.set(TEMPLATE_VALUES_KEY, stored)

    def load(self, prompt_id: str) -> Dict[str, str]:
        values = self._load_all().get(prompt_id)
        return dict(values) if isinstance(values, dict) else {}

    def prompt_ids(self):
        return list(self._load_all())
