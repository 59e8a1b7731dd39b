from domain.constants import THEME_KEY
from infra.local_state import LocalState

THEMES = ("light", "dark")

class ThemePreference:
    def __init__(self, local_state: LocalState):
        self.local_state = local_state

    def get(self) -> str:
        theme = self.local_state.get(THEME_KEY)
        return theme if theme in THEMES else "light"

    def set(self, theme: str):
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme}")
        self.local_state.set(THEME_KEY, theme)

    def toggle(self) -> str:
        theme = "light" if self.get() == "dark" else "dark"
        self.set(theme)
        return theme
