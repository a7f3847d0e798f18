"""Structural tokenization of 3DMigoto-style INI files.

Splits INI text into deterministic token buckets:

- section tokens from ``[SectionName]`` headers, with override prefixes
  such as ``TextureOverride`` stripped;
- key tokens from whitelisted key names on ``key = value`` lines;
- path tokens from values that look like file paths, without extensions.

Section names and path stems are also kept as continuous strings for
substring matching.

Example:
    >>> buckets = extract_structural_ini_tokens(
    ...     "[TextureOverrideRaidenBody]\\nfilename = Raiden/RaidenBodyDiffuse.dds\\n",
    ...     IniTokenizationConfig(),
    ... )
    >>> buckets.section_tokens
    ('body', 'raiden')
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Set, Tuple

DEFAULT_STOPWORDS = frozenset({
    "mod", "skin", "preset", "version", "ver", "v", "fix", "shader", "tex",
    "texture", "override", "resource", "commandlist", "key", "ini", "dds",
})

DEFAULT_INI_KEY_BLACKLIST = frozenset({
    "run", "handling", "match_priority", "drawindexed", "vb", "ib", "ps", "vs",
    "cs", "format", "stride",
})

DEFAULT_INI_KEY_WHITELIST = frozenset({
    "texture", "resource", "filename", "path", "name", "character",
})

SECTION_PREFIX_BLACKLIST = (
    "textureoverride", "shaderoverride", "resource", "commandlist", "key",
    "present", "draw",
)

PATH_EXT_HINTS = (".dds", ".png", ".jpg", ".ini", ".buf", ".txt")

MIN_TOKEN_LEN = 4


@dataclass(frozen=True)
class IniTokenizationConfig:
    """Schema-driven additions to the default tokenizer rules.

    Stopwords and blacklisted keys extend the defaults. A non-empty key
    whitelist replaces the default whitelist.
    """
    stopwords: Tuple[str, ...] = ()
    short_token_whitelist: Tuple[str, ...] = ()
    ini_key_blacklist: Tuple[str, ...] = ()
    ini_key_whitelist: Tuple[str, ...] = ()


@dataclass(frozen=True)
class IniTokenBuckets:
    """Sorted, deduplicated tokens and strings extracted from one INI file."""
    section_tokens: Tuple[str, ...] = ()
    key_tokens: Tuple[str, ...] = ()
    path_tokens: Tuple[str, ...] = ()
    section_strings: Tuple[str, ...] = ()   # e.g. "RaidenBody"
    path_strings: Tuple[str, ...] = ()      # e.g. "RaidenBodyDiffuse"


@dataclass
class _TokenRules:
    stopwords: FrozenSet[str]
    short_whitelist: FrozenSet[str]
    key_blacklist: FrozenSet[str]
    key_whitelist: FrozenSet[str]

    @classmethod
    def from_config(cls, config: IniTokenizationConfig) -> "_TokenRules":
        key_whitelist = _normalized(config.ini_key_whitelist, _normalize_key)
        return cls(
            stopwords=DEFAULT_STOPWORDS | _normalized(config.stopwords, _normalize_simple),
            short_whitelist=_normalized(config.short_token_whitelist, _normalize_simple),
            key_blacklist=DEFAULT_INI_KEY_BLACKLIST
            | _normalized(config.ini_key_blacklist, _normalize_key),
            key_whitelist=key_whitelist or DEFAULT_INI_KEY_WHITELIST,
        )

    def keep(self, token: str) -> bool:
        if not token or token.isdigit() or token in self.stopwords:
            return False
        return len(token) >= MIN_TOKEN_LEN or token in self.short_whitelist


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")
_PATH_SEPARATORS = re.compile(r"[/\\,; \t]+")
_KEY_CHARS = re.compile(r"[^a-z0-9]")


def extract_structural_ini_tokens(
    text: str, config: IniTokenizationConfig
) -> IniTokenBuckets:
    """Extract structural token buckets from INI text.

    Args:
        text: Decoded INI text.
        config: Tokenizer additions.

    Returns:
        IniTokenBuckets with sorted, deduplicated contents.
    """
    rules = _TokenRules.from_config(config)

    section_tokens: Set[str] = set()
    key_tokens: Set[str] = set()
    path_tokens: Set[str] = set()
    section_strings: Set[str] = set()
    path_strings: Set[str] = set()

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith((";", "#")):
            continue

        if line.startswith("[") and line.endswith("]") and len(line) >= 2:
            cleaned = strip_section_prefixes(line[1:-1]).strip()
            section_tokens.update(t for t in tokenize_structural(cleaned) if rules.keep(t))
            if cleaned:
                section_strings.add(cleaned)
            continue

        lhs, sep, rhs = line.partition("=")
        if not sep:
            continue

        key = _normalize_key(lhs)
        if not key or key in rules.key_blacklist or key not in rules.key_whitelist:
            continue

        key_tokens.update(t for t in tokenize_structural(lhs) if rules.keep(t))

        if looks_like_path(rhs):
            for segment in _path_segments(rhs):
                path_tokens.update(t for t in tokenize_structural(segment) if rules.keep(t))
                stem, dot, _ext = segment.rpartition(".")
                if dot and stem:
                    path_tokens.update(t for t in tokenize_structural(stem) if rules.keep(t))
                    path_strings.add(stem)

    return IniTokenBuckets(
        section_tokens=tuple(sorted(section_tokens)),
        key_tokens=tuple(sorted(key_tokens)),
        path_tokens=tuple(sorted(path_tokens)),
        section_strings=tuple(sorted(section_strings)),
        path_strings=tuple(sorted(path_strings)),
    )


def tokenize_structural(value: str) -> List[str]:
    """Split on camelCase boundaries and non-alphanumerics, lowercased."""
    spaced = _CAMEL_BOUNDARY.sub(" ", value)
    return _NON_ALNUM.sub(" ", spaced).lower().split()


def strip_section_prefixes(section: str) -> str:
    """Repeatedly strip known override prefixes from a section name."""
    current = section.strip()
    changed = True
    while changed:
        changed = False
        lower = current.lower()
        for prefix in SECTION_PREFIX_BLACKLIST:
            if lower.startswith(prefix):
                current = current[len(prefix):]
                lower = current.lower()
                changed = True
    return current


def looks_like_path(value: str) -> bool:
    lowered = value.strip().lower()
    return any(ext in lowered for ext in PATH_EXT_HINTS)


def _path_segments(value: str) -> List[str]:
    value = value.strip().strip("\"'")
    segments = []
    for part in _PATH_SEPARATORS.split(value):
        cleaned = part.strip("\"'").strip()
        if cleaned:
            segments.append(cleaned)
    return segments


def _normalize_simple(value: str) -> str:
    return value.strip().lower()


def _normalize_key(value: str) -> str:
    return _KEY_CHARS.sub("_", value.strip().lower()).strip("_")


def _normalized(values: Iterable[str], normalize) -> FrozenSet[str]:
    return frozenset(n for n in (normalize(v) for v in values) if n)
