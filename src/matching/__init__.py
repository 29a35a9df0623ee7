"""Job-candidate matching and match score caching.

Public API:
    - MatchingEngine: Scores a job against a candidate profile
    - SkillNormalizer: Canonicalizes free-text skill names
    - InMemoryMatchCache / SqliteMatchCache: Match score caches
    - BatchMatchService: Cache-first scoring over many jobs
    - ProfileService: Load candidate profiles and job records
    - MatchingConfig: Configuration settings
"""

from src.matching.batch import (
    BatchMatchResult,
    BatchMatchService,
    InMemoryJobSource,
    JobSource,
)
from src.matching.cache import (
    CacheStats,
    InMemoryMatchCache,
    MatchCache,
    SqliteMatchCache,
    create_match_cache,
)
from src.matching.config import MatchingConfig, get_matching_config, reset_matching_config
from src.matching.embeddings import (
    JobEmbeddingSource,
    StaticJobEmbeddings,
    UnavailableJobEmbeddings,
)
from src.matching.engine import MatchingEngine
from src.matching.models import (
    CandidateProfile,
    Job,
    JobCandidateMatch,
    MatchFactors,
    MatchingOptions,
    MatchResult,
    MatchScore,
    MatchWeights,
    NormalizedSkill,
    SkillMapping,
)
from src.matching.profile import ProfileService
from src.matching.skills import SkillNormalizer, get_skill_normalizer
from src.matching.vector import cosine_similarity, normalize

__all__ = [
    "MatchingEngine",
    "MatchResult",
    "MatchingOptions",
    "MatchWeights",
    "Job",
    "CandidateProfile",
    "JobCandidateMatch",
    "MatchFactors",
    "MatchScore",
    "NormalizedSkill",
    "SkillMapping",
    "SkillNormalizer",
    "get_skill_normalizer",
    "MatchCache",
    "InMemoryMatchCache",
    "SqliteMatchCache",
    "CacheStats",
    "create_match_cache",
    "BatchMatchService",
    "BatchMatchResult",
    "JobSource",
    "InMemoryJobSource",
    "JobEmbeddingSource",
    "StaticJobEmbeddings",
    "UnavailableJobEmbeddings",
    "ProfileService",
    "MatchingConfig",
    "get_matching_config",
    "reset_matching_config",
    "cosine_similarity",
    "normalize",
]
