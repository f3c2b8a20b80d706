from .candidate import Candidate as Candidate
from .candidate_stats import CandidateStats as CandidateStats
from .directory_cache import DirectoryCache as DirectoryCache
from .pool_config import PoolConfig as PoolConfig
