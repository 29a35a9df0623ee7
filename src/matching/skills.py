"""Skill normalization: map free-text skill names to canonical, categorized forms."""

from __future__ import annotations

import re
from collections.abc import Iterable

from src.matching.models import NormalizedSkill, SkillMapping

EXACT_CONFIDENCE = 1.0
FUZZY_CONFIDENCE = 0.8
GUESSED_CONFIDENCE = 0.5

DEFAULT_CATEGORY = "other"

# Inputs shorter than this never match by being contained in a longer name.
_MIN_CONTAINED_LENGTH = 3

_NOISE_CHARS_RE = re.compile(r"[^\w\s.#+/-]")
_WHITESPACE_RE = re.compile(r"\s+")
_LEADING_ARTICLE_RE = re.compile(r"^the\s+", re.IGNORECASE)
_NOISE_SUFFIX_RE = re.compile(
    r"\s+(programming|language|framework|library|js|\.js)$", re.IGNORECASE
)

_SPECIAL_CAPITALIZATION: dict[str, str] = {
    "javascript": "JavaScript",
    "typescript": "TypeScript",
    "nodejs": "Node.js",
    "reactjs": "React",
    "vuejs": "Vue.js",
    "angularjs": "AngularJS",
    "jquery": "jQuery",
    "mongodb": "MongoDB",
    "postgresql": "PostgreSQL",
    "mysql": "MySQL",
    "github": "GitHub",
    "aws": "AWS",
    "gcp": "Google Cloud Platform",
    "docker": "Docker",
    "kubernetes": "Kubernetes",
}

# First match wins, so databases are tested before languages ("mongo" contains "go").
_CATEGORY_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(mysql|postgresql|mongodb|redis|sqlite|oracle)"), "databases"),
    (
        re.compile(
            r"(java|python|javascript|typescript|c\+\+|rust|go|php|ruby|swift|kotlin)"
        ),
        "programming_languages",
    ),
    (
        re.compile(r"(react|vue|angular|express|django|flask|spring|laravel)"),
        "frameworks_libraries",
    ),
    (
        re.compile(r"(aws|azure|gcp|docker|kubernetes|heroku|firebase)"),
        "cloud_platforms",
    ),
    (re.compile(r"(git|jira|figma|photoshop|slack|teams)"), "tools_software"),
    (
        re.compile(r"(agile|scrum|devops|ci/cd|tdd|microservices)"),
        "methodologies",
    ),
    (
        re.compile(r"(leadership|communication|teamwork|problem.solving)"),
        "soft_skills",
    ),
]

DEFAULT_SKILL_MAPPINGS: tuple[SkillMapping, ...] = (
    # Programming languages
    SkillMapping(
        "JavaScript",
        ["js", "javascript", "java script", "ecmascript", "es6", "es2015", "es2017"],
        "programming_languages",
    ),
    SkillMapping("TypeScript", ["ts", "typescript", "type script"], "programming_languages"),
    SkillMapping("Python", ["python", "python3", "py"], "programming_languages"),
    SkillMapping(
        "Java",
        ["java", "java 8", "java 11", "java 17", "openjdk"],
        "programming_languages",
    ),
    SkillMapping("C++", ["c++", "cpp", "c plus plus", "cplusplus"], "programming_languages"),
    SkillMapping("C#", ["c#", "csharp", "c sharp", "dotnet"], "programming_languages"),
    # Frameworks & libraries
    SkillMapping("React", ["react", "reactjs", "react.js", "react js"], "frameworks_libraries"),
    SkillMapping("Vue.js", ["vue", "vuejs", "vue.js", "vue js"], "frameworks_libraries"),
    SkillMapping(
        "Angular", ["angular", "angular 2", "angular2", "angularjs"], "frameworks_libraries"
    ),
    SkillMapping("Node.js", ["node", "nodejs", "node.js", "node js"], "frameworks_libraries"),
    SkillMapping("Express.js", ["express", "expressjs", "express.js"], "frameworks_libraries"),
    SkillMapping("Django", ["django", "django framework"], "frameworks_libraries"),
    SkillMapping("Flask", ["flask", "flask framework"], "frameworks_libraries"),
    SkillMapping(
        "Spring Boot",
        ["spring", "spring boot", "springboot", "spring framework"],
        "frameworks_libraries",
    ),
    # Databases
    SkillMapping("MongoDB", ["mongodb", "mongo", "mongo db"], "databases"),
    SkillMapping("PostgreSQL", ["postgresql", "postgres", "postgre"], "databases"),
    SkillMapping("MySQL", ["mysql", "my sql"], "databases"),
    SkillMapping("Redis", ["redis", "redis cache"], "databases"),
    # Cloud platforms
    SkillMapping("AWS", ["aws", "amazon web services", "amazon aws"], "cloud_platforms"),
    SkillMapping(
        "Google Cloud Platform",
        ["gcp", "google cloud", "google cloud platform"],
        "cloud_platforms",
    ),
    SkillMapping(
        "Microsoft Azure", ["azure", "microsoft azure", "azure cloud"], "cloud_platforms"
    ),
    SkillMapping(
        "Docker", ["docker", "docker containers", "containerization"], "cloud_platforms"
    ),
    SkillMapping("Kubernetes", ["kubernetes", "k8s", "kube"], "cloud_platforms"),
    # Tools & software
    SkillMapping(
        "Git", ["git", "git version control", "github", "gitlab"], "tools_software"
    ),
    SkillMapping("JIRA", ["jira", "atlassian jira"], "tools_software"),
    SkillMapping("Figma", ["figma", "figma design"], "tools_software"),
    # Methodologies
    SkillMapping(
        "Agile", ["agile", "agile methodology", "agile development"], "methodologies"
    ),
    SkillMapping("Scrum", ["scrum", "scrum methodology", "scrum master"], "methodologies"),
    SkillMapping(
        "DevOps", ["devops", "dev ops", "ci/cd", "continuous integration"], "methodologies"
    ),
)


def clean_skill_name(skill: str) -> str:
    """Clean a raw skill string for lookup.

    Collapses whitespace, drops punctuation other than characters that carry
    meaning in skill names ("+", "#", ".", "/", "-"), and strips a leading
    "the" plus noise suffixes such as "programming" or "framework".
    """
    value = skill.strip()
    value = _NOISE_CHARS_RE.sub("", value)
    value = _WHITESPACE_RE.sub(" ", value)
    value = _LEADING_ARTICLE_RE.sub("", value)
    value = _NOISE_SUFFIX_RE.sub("", value)
    return value.strip()


def capitalize_skill(skill: str) -> str:
    special = _SPECIAL_CAPITALIZATION.get(skill.lower())
    if special:
        return special
    return " ".join(word[:1].upper() + word[1:].lower() for word in skill.split(" "))


def guess_category(skill: str) -> str:
    """Guess a category from keyword patterns, defaulting to 'other'."""
    lower = skill.lower()
    for pattern, category in _CATEGORY_PATTERNS:
        if pattern.search(lower):
            return category
    return DEFAULT_CATEGORY


class SkillNormalizer:
    """Dictionary-backed skill normalizer with alias and fuzzy lookup."""

    def __init__(self, mappings: Iterable[SkillMapping] | None = None) -> None:
        self._mappings: list[SkillMapping] = []
        self._lookup: dict[str, SkillMapping] = {}
        for mapping in DEFAULT_SKILL_MAPPINGS if mappings is None else mappings:
            self.add_mapping(mapping)

    def add_mapping(self, mapping: SkillMapping) -> None:
        """Register a canonical skill and its variations."""
        self._mappings.append(mapping)
        self._lookup[mapping.canonical.lower()] = mapping
        for variation in mapping.variations:
            self._lookup[variation.lower()] = mapping

    def normalize_skill(self, skill: str) -> NormalizedSkill:
        """Normalize one skill name.

        Tries an exact/alias lookup (confidence 1.0), then substring
        containment against known names (0.8), then falls back to the
        capitalized input with a guessed category (0.5).
        """
        original = skill
        if not skill or not skill.strip():
            return NormalizedSkill(original, "", None, EXACT_CONFIDENCE)

        cleaned = clean_skill_name(skill)
        if not cleaned:
            return NormalizedSkill(original, "", None, EXACT_CONFIDENCE)

        raw_key = _WHITESPACE_RE.sub(" ", skill.strip().lower())
        mapping = self._lookup.get(raw_key) or self._lookup.get(cleaned.lower())
        if mapping is not None:
            return NormalizedSkill(
                original, mapping.canonical, mapping.category, EXACT_CONFIDENCE
            )

        fuzzy = self._find_fuzzy_match(cleaned)
        if fuzzy is not None:
            return NormalizedSkill(
                original, fuzzy.canonical, fuzzy.category, FUZZY_CONFIDENCE
            )

        normalized = capitalize_skill(cleaned)
        return NormalizedSkill(
            original, normalized, guess_category(normalized), GUESSED_CONFIDENCE
        )

    def normalize_skills(self, skills: Iterable[str]) -> list[NormalizedSkill]:
        return [self.normalize_skill(skill) for skill in skills]

    def get_skills_by_category(self, category: str) -> list[str]:
        """Return canonical names registered under `category`, in registration order."""
        seen: set[str] = set()
        result: list[str] = []
        for mapping in self._mappings:
            if mapping.category == category and mapping.canonical not in seen:
                seen.add(mapping.canonical)
                result.append(mapping.canonical)
        return result

    def _find_fuzzy_match(self, skill: str) -> SkillMapping | None:
        lower = skill.lower()
        allow_contained = len(lower) >= _MIN_CONTAINED_LENGTH

        for mapping in self._mappings:
            for known in (mapping.canonical, *mapping.variations):
                known_lower = known.lower()
                if known_lower in lower:
                    return mapping
                if allow_contained and lower in known_lower:
                    return mapping
        return None


# Singleton instance for easy import
_skill_normalizer: SkillNormalizer | None = None


def get_skill_normalizer() -> SkillNormalizer:
    """Get the shared skill normalizer."""
    global _skill_normalizer
    if _skill_normalizer is None:
        _skill_normalizer = SkillNormalizer()
    return _skill_normalizer


def reset_skill_normalizer() -> None:
    """Reset the shared skill normalizer (useful for testing)."""
    global _skill_normalizer
    _skill_normalizer = None
