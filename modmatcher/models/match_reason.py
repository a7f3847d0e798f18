"""
Reason records explaining why a catalog candidate scored.

Every scoring stage attaches typed reason records to the candidates it
touches. The set of reason kinds is closed: one frozen dataclass per kind,
each tagged with a ReasonKind member so consumers can dispatch on `kind`.

Kinds:
1. HashOverlap - content hashes from INI files matched the entry
2. AliasStrict - every token of a variant alias appeared in the folder name
3. SubstringName - entry name/alias/tag found inside a file or INI string
4. DeepNameToken - subfolder/file stem token shared with the entry
5. IniSectionToken / IniContentToken - INI header or key/path token hit
6. TokenOverlap - folder-name token overlap ratio (support only)
7. DirectNameSupport - a word of the entry name/tags in the folder name
8. NegativeEvidence - strong tokens pointing at other entries
9. AiRerank - score from an external re-rank provider
10. FolderNameRescue - last-resort root folder name substring hit
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union


class ReasonKind(Enum):
    """Encodes the evidence categories a candidate can accumulate."""
    HASH_OVERLAP = "hash_overlap"              # INI content hash hit
    ALIAS_STRICT = "alias_strict"              # Full alias token coverage
    SUBSTRING_NAME = "substring_name"          # Name/alias/tag substring hit
    DEEP_NAME_TOKEN = "deep_name_token"        # Subfolder/file stem token
    INI_SECTION_TOKEN = "ini_section_token"    # INI section header token
    INI_CONTENT_TOKEN = "ini_content_token"    # INI key or path token
    TOKEN_OVERLAP = "token_overlap"            # Folder-name overlap ratio
    DIRECT_NAME_SUPPORT = "direct_name_support"  # Name word in folder name
    NEGATIVE_EVIDENCE = "negative_evidence"    # Foreign strong tokens
    AI_RERANK = "ai_rerank"                    # External re-rank score
    FOLDER_NAME_RESCUE = "folder_name_rescue"  # Root folder name fallback


@dataclass(frozen=True)
class HashOverlap:
    """Hash overlap evidence, cumulative across all matched hashes."""
    kind: ClassVar[ReasonKind] = ReasonKind.HASH_OVERLAP
    overlap: int                      # Matched hashes
    unique_overlap: int               # Matched hashes owned by this entry only


@dataclass(frozen=True)
class AliasStrict:
    """All tokens of a variant alias were present."""
    kind: ClassVar[ReasonKind] = ReasonKind.ALIAS_STRICT
    alias: str


@dataclass(frozen=True)
class SubstringName:
    """Substring hit of the entry name in a file or INI derived string."""
    kind: ClassVar[ReasonKind] = ReasonKind.SUBSTRING_NAME
    matched_term: str                 # Entry name that matched
    source: str                       # "file", "ini", "file_alias", "ini_tag", ...


@dataclass(frozen=True)
class DeepNameToken:
    kind: ClassVar[ReasonKind] = ReasonKind.DEEP_NAME_TOKEN
    token: str


@dataclass(frozen=True)
class IniSectionToken:
    kind: ClassVar[ReasonKind] = ReasonKind.INI_SECTION_TOKEN
    token: str


@dataclass(frozen=True)
class IniContentToken:
    kind: ClassVar[ReasonKind] = ReasonKind.INI_CONTENT_TOKEN
    token: str


@dataclass(frozen=True)
class TokenOverlap:
    """Folder token overlap ratio in [0, 1]. Never primary evidence."""
    kind: ClassVar[ReasonKind] = ReasonKind.TOKEN_OVERLAP
    ratio: float


@dataclass(frozen=True)
class DirectNameSupport:
    """A word of the entry name or tags appeared in the folder name."""
    kind: ClassVar[ReasonKind] = ReasonKind.DIRECT_NAME_SUPPORT
    token: str


@dataclass(frozen=True)
class NegativeEvidence:
    """Strong observed tokens that belong to other entries."""
    kind: ClassVar[ReasonKind] = ReasonKind.NEGATIVE_EVIDENCE
    foreign_strong_hits: int


@dataclass(frozen=True)
class AiRerank:
    kind: ClassVar[ReasonKind] = ReasonKind.AI_RERANK
    ai_score: float


@dataclass(frozen=True)
class FolderNameRescue:
    kind: ClassVar[ReasonKind] = ReasonKind.FOLDER_NAME_RESCUE
    matched_term: str


Reason = Union[
    HashOverlap,
    AliasStrict,
    SubstringName,
    DeepNameToken,
    IniSectionToken,
    IniContentToken,
    TokenOverlap,
    DirectNameSupport,
    NegativeEvidence,
    AiRerank,
    FolderNameRescue,
]
