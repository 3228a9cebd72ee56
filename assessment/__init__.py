"""Assessment core package.

Exposes the FastAPI application factory. The invariant-enforcing operations
live in `assessment/logic/` (scoring-band registry, question order
sequencer, activation controller, level resolver); route handlers in
`assessment/routes/` only translate HTTP to those calls.
"""

from __future__ import annotations

from assessment.main import create_app

__all__ = ["create_app"]
