"""Record types for the MUSHCODE knowledge store.

Five record variants live in the store: patterns, examples, security rules,
server dialects and learning paths. Each carries an ``id``, classification
fields used as index keys (category, difficulty, server compatibility), and
free-text fields that only feed relevance scoring.

Records are plain dataclasses. They are treated as immutable once added to
a store; call ``touch()`` after an explicit edit and re-add the record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

# ── Classification values ─────────────────────────────────────────

DIFFICULTIES = ("beginner", "intermediate", "advanced")

PATTERN_CATEGORIES = ("command", "function", "trigger", "attribute", "utility")

EXAMPLE_CATEGORIES = (
    "building", "administration", "functions", "commands",
    "triggers", "utilities", "security",
)

SEVERITIES = ("low", "medium", "high", "critical")

SECURITY_CATEGORIES = ("injection", "permission", "resource", "logic", "data")

SERVER_TYPES = ("PennMUSH", "TinyMUSH", "RhostMUSH", "TinyMUX", "MUX")

# Variant names double as the keys of the store statistics response.
PATTERNS = "patterns"
EXAMPLES = "examples"
SECURITY_RULES = "securityRules"
DIALECTS = "dialects"
LEARNING_PATHS = "learningPaths"

VARIANTS = (PATTERNS, DIALECTS, SECURITY_RULES, EXAMPLES, LEARNING_PATHS)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ── Records ───────────────────────────────────────────────────────

@dataclass
class Parameter:
    """A parameter of a pattern's code template."""
    name: str
    type: str = "string"
    description: str = ""
    required: bool = True
    default_value: str | None = None


@dataclass
class Pattern:
    """A reusable MUSHCODE code pattern."""
    id: str
    name: str
    description: str
    category: str  # one of PATTERN_CATEGORIES
    difficulty: str = "beginner"
    server_compatibility: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    code_template: str = ""
    parameters: list[Parameter] = field(default_factory=list)
    security_level: str = "public"  # public, player, builder, wizard, god
    examples: list[str] = field(default_factory=list)
    related_patterns: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def searchable_text(self) -> str:
        return f"{self.name} {self.description} {' '.join(self.tags)}"

    def touch(self) -> None:
        self.updated_at = utc_now()


@dataclass
class ExampleSource:
    url: str
    author: str | None = None
    license: str | None = None


@dataclass
class Example:
    """An educational code example."""
    id: str
    title: str
    description: str
    category: str  # one of EXAMPLE_CATEGORIES
    difficulty: str = "beginner"
    server_compatibility: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    code: str = ""
    explanation: str = ""
    related_concepts: list[str] = field(default_factory=list)
    prerequisites: list[str] = field(default_factory=list)
    learning_objectives: list[str] = field(default_factory=list)
    source: ExampleSource | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def searchable_text(self) -> str:
        return f"{self.title} {self.description} {' '.join(self.tags)}"

    def touch(self) -> None:
        self.updated_at = utc_now()


@dataclass
class SecurityRule:
    """A rule describing a vulnerable MUSHCODE construct."""
    id: str
    name: str
    description: str
    severity: str  # one of SEVERITIES
    category: str  # one of SECURITY_CATEGORIES
    pattern: str = ""  # regex matched against code lines
    recommendation: str = ""
    affected_servers: list[str] = field(default_factory=list)
    cwe_id: str | None = None
    references: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def searchable_text(self) -> str:
        return f"{self.name} {self.description} {' '.join(self.tags)}"

    def touch(self) -> None:
        self.updated_at = utc_now()


@dataclass
class Dialect:
    """A MUD server dialect. Dialects are keyed by name."""
    name: str
    version: str = ""
    description: str = ""
    limitations: list[str] = field(default_factory=list)
    function_library: list[str] = field(default_factory=list)
    common_patterns: list[str] = field(default_factory=list)
    documentation_url: str | None = None
    tags: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def id(self) -> str:
        return self.name

    def searchable_text(self) -> str:
        return f"{self.name} {self.description} {' '.join(self.tags)}"

    def touch(self) -> None:
        self.updated_at = utc_now()


@dataclass
class LearningStep:
    step_number: int
    title: str
    description: str = ""
    example_ids: list[str] = field(default_factory=list)
    objectives: list[str] = field(default_factory=list)
    exercises: list[str] = field(default_factory=list)


@dataclass
class LearningPath:
    """An ordered sequence of steps for progressive skill development."""
    id: str
    name: str
    description: str = ""
    difficulty: str = "beginner"
    estimated_time: str = ""
    prerequisites: list[str] = field(default_factory=list)
    steps: list[LearningStep] = field(default_factory=list)
    resources: list[dict] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def searchable_text(self) -> str:
        return f"{self.name} {self.description} {' '.join(self.tags)}"

    def touch(self) -> None:
        self.updated_at = utc_now()


Record = Pattern | Example | SecurityRule | Dialect | LearningPath

RECORD_TYPES: dict[str, type] = {
    PATTERNS: Pattern,
    EXAMPLES: Example,
    SECURITY_RULES: SecurityRule,
    DIALECTS: Dialect,
    LEARNING_PATHS: LearningPath,
}


def variant_of(record) -> str:
    """Return the variant name for a record instance."""
    for variant, cls in RECORD_TYPES.items():
        if isinstance(record, cls):
            return variant
    raise TypeError(f"Not a knowledge record: {type(record).__name__}")


# ── Construction from JSON data files ─────────────────────────────

def _parse_ts(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        # Data files are written with a trailing Z
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return utc_now()


def _label(data: dict, key: str, default: str | None = None) -> str:
    """A classification value; these become index keys so must be strings."""
    value = data[key] if default is None else data.get(key, default)
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _labels(data: dict, key: str) -> list[str]:
    values = data.get(key, [])
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise TypeError(f"{key} must be a list of strings")
    return list(values)


def _timestamps(data: dict) -> dict:
    return {
        "created_at": _parse_ts(data.get("createdAt")),
        "updated_at": _parse_ts(data.get("updatedAt") or data.get("createdAt")),
    }


def from_dict(variant: str, data: dict):
    """Build a record from its camelCase JSON representation.

    Raises KeyError when a required field is missing, TypeError when a
    classification field (category, difficulty, severity, servers, tags) is
    not a string or list of strings, and ValueError for an unknown variant.
    """
    if variant == PATTERNS:
        return Pattern(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            category=_label(data, "category"),
            difficulty=_label(data, "difficulty", "beginner"),
            server_compatibility=_labels(data, "serverCompatibility"),
            tags=_labels(data, "tags"),
            code_template=data.get("codeTemplate", ""),
            parameters=[
                Parameter(
                    name=p["name"],
                    type=p.get("type", "string"),
                    description=p.get("description", ""),
                    required=p.get("required", True),
                    default_value=p.get("defaultValue"),
                )
                for p in data.get("parameters", [])
            ],
            security_level=data.get("securityLevel", "public"),
            examples=list(data.get("examples", [])),
            related_patterns=list(data.get("relatedPatterns", [])),
            **_timestamps(data),
        )
    if variant == EXAMPLES:
        source = data.get("source")
        return Example(
            id=data["id"],
            title=data["title"],
            description=data.get("description", ""),
            category=_label(data, "category"),
            difficulty=_label(data, "difficulty", "beginner"),
            server_compatibility=_labels(data, "serverCompatibility"),
            tags=_labels(data, "tags"),
            code=data.get("code", ""),
            explanation=data.get("explanation", ""),
            related_concepts=list(data.get("relatedConcepts", [])),
            prerequisites=list(data.get("prerequisites", [])),
            learning_objectives=list(data.get("learningObjectives", [])),
            source=ExampleSource(
                url=source["url"],
                author=source.get("author"),
                license=source.get("license"),
            ) if source else None,
            **_timestamps(data),
        )
    if variant == SECURITY_RULES:
        return SecurityRule(
            id=data.get("ruleId") or data["id"],
            name=data["name"],
            description=data.get("description", ""),
            severity=_label(data, "severity"),
            category=_label(data, "category"),
            pattern=data.get("pattern", ""),
            recommendation=data.get("recommendation", ""),
            affected_servers=_labels(data, "affectedServers"),
            cwe_id=data.get("cweId"),
            references=list(data.get("references", [])),
            tags=_labels(data, "tags"),
            **_timestamps(data),
        )
    if variant == DIALECTS:
        docs = data.get("documentation") or {}
        return Dialect(
            name=data["name"],
            version=data.get("version", ""),
            description=data.get("description", ""),
            limitations=list(data.get("limitations", [])),
            function_library=[
                f["name"] if isinstance(f, dict) else f
                for f in data.get("functionLibrary", [])
            ],
            common_patterns=list(data.get("commonPatterns", [])),
            documentation_url=docs.get("url"),
            tags=_labels(data, "tags"),
            **_timestamps(data),
        )
    if variant == LEARNING_PATHS:
        return LearningPath(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            difficulty=_label(data, "difficulty", "beginner"),
            estimated_time=data.get("estimatedTime", ""),
            prerequisites=list(data.get("prerequisites", [])),
            steps=[
                LearningStep(
                    step_number=s["stepNumber"],
                    title=s["title"],
                    description=s.get("description", ""),
                    example_ids=list(s.get("exampleIds", [])),
                    objectives=list(s.get("objectives", [])),
                    exercises=list(s.get("exercises", [])),
                )
                for s in data.get("steps", [])
            ],
            resources=list(data.get("resources", [])),
            tags=_labels(data, "tags"),
            **_timestamps(data),
        )
    raise ValueError(f"Unknown record variant: {variant}")
