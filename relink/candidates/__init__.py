from .candidate_pool import CandidatePool as CandidatePool
from .candidate_store import CandidateStore as CandidateStore
from .directory_client import (
    DirectoryClient as DirectoryClient,
    DirectoryFetchError as DirectoryFetchError,
)
from .models import (
    Candidate as Candidate,
    CandidateStats as CandidateStats,
    DirectoryCache as DirectoryCache,
    PoolConfig as PoolConfig,
)
