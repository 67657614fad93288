"""
Near-synonym table for the fallback skills factor.

A required skill that the worker lacks verbatim still earns partial credit when
either skill lists the other here. The table can be replaced by a JSON file of
the same shape ({"skill": ["synonym", ...]}).
"""
import json
from pathlib import Path
from typing import Dict, FrozenSet, Mapping, Optional

from gigmatch.utils.exceptions import ConfigurationError

DEFAULT_SKILL_SYNONYMS: Dict[str, list] = {
    "javascript": ["js", "node.js", "nodejs", "react", "vue", "angular"],
    "react": ["reactjs", "react.js", "javascript", "js"],
    "vue": ["vuejs", "vue.js", "javascript", "js"],
    "angular": ["angularjs", "javascript", "js"],
    "php": ["laravel", "symfony", "codeigniter"],
    "laravel": ["php"],
    "python": ["django", "flask", "fastapi"],
    "django": ["python"],
    "css": ["scss", "sass", "less", "styling"],
    "html": ["html5", "markup"],
    "mysql": ["sql", "database"],
    "postgresql": ["sql", "database"],
    "mongodb": ["nosql", "database"],
}


class SkillSynonyms:
    def __init__(self, table: Mapping[str, list] = None):
        table = DEFAULT_SKILL_SYNONYMS if table is None else table
        self._table: Dict[str, FrozenSet[str]] = {
            k.lower().strip(): frozenset(s.lower().strip() for s in v)
            for k, v in table.items()
        }

    @classmethod
    def from_file(cls, path) -> "SkillSynonyms":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict) or not all(isinstance(v, list) for v in data.values()):
            raise ValueError(f"Skill synonym file {path} must map skills to lists")
        return cls(data)

    def related(self, skill: str) -> FrozenSet[str]:
        return self._table.get(skill.lower().strip(), frozenset())

    def are_similar(self, a: str, b: str) -> bool:
        a, b = a.lower().strip(), b.lower().strip()
        return b in self.related(a) or a in self.related(b)

    def __len__(self):
        return len(self._table)


def load_skill_synonyms(path: Optional[str] = None) -> SkillSynonyms:
    if not path:
        return SkillSynonyms()
    try:
        return SkillSynonyms.from_file(path)
    except (OSError, ValueError) as e:
        raise ConfigurationError(
            f"Could not load skill synonyms: {e}", config_key="SKILL_SYNONYMS_PATH", config_value=path, cause=e
        ) from e
