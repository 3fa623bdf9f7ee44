from datalive.worker.jobs.analysis_job import (
    analyze_document_job,
    enqueue_document_analysis,
    recover_stuck_analyses_job,
)

__all__ = [
    "analyze_document_job",
    "enqueue_document_analysis",
    "recover_stuck_analyses_job",
]
