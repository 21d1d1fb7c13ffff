"""workcouncil - multi-model evaluation council for paid work submissions.

Several independent evaluators, each backed by a different language-model
backend, vote on whether a submitted artifact deserves payment. Untrusted
submissions pass a security gateway before any backend sees them.

Example:
    from workcouncil.evaluation import run_council_evaluation

    result = await run_council_evaluation(
        "sub-1",
        "https://github.com/acme/widget",
        "Implemented the feature with tests.",
    )
    if result.approved:
        pay(result.submission_id)
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
