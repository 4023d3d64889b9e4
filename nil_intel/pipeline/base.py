"""
Batch job contracts.

Every job implements BatchJob.run() and returns a JobResult. Job-specific
logic lives in the concrete classes; the job manager only sees the uniform
interface.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Any, Type


@dataclass
class JobResult:
    """Uniform output from every batch job."""
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[Any] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class BatchJob(ABC):
    """
    Base class for the market-intelligence batch jobs.

    A job is stateless: it reads what it needs from the store, does its work
    one independent unit at a time (athlete, group, pair chunk, query), and
    records unit failures on the JobResult instead of raising. Only
    configuration errors escape run().
    """
    name: str = ''

    # Metadata: shown by the CLI `--list` output
    description: str = ''
    apis: List[str] = []

    @abstractmethod
    def run(self, **params) -> JobResult:
        """Execute the job. Keyword params are job specific."""
        ...


def get_job(registry: Dict[str, Type[BatchJob]], name: str) -> BatchJob:
    """Look up and instantiate a registered job."""
    job_cls = registry.get(name)
    if not job_cls:
        raise ValueError(f"No job registered as '{name}'. Available: {sorted(registry)}")
    return job_cls()


def get_jobs_info(registry: Dict[str, Type[BatchJob]]) -> Dict[str, Any]:
    """Serialize the job registry into a JSON-friendly dict."""
    return {
        name: {
            'description': cls.description or '',
            'apis': cls.apis if isinstance(cls.apis, list) else [],
        }
        for name, cls in registry.items()
    }
