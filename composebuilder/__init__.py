"""composebuilder: service catalog and registry version synchronisation.

The package keeps catalog entries' pinned container image versions in step
with an upstream Docker registry.  The interesting parts live in
:mod:`composebuilder.versions`; :mod:`composebuilder.catalog` provides the
entry models and the default file-backed store, and :mod:`composebuilder.api`
exposes the manual refresh triggers over Falcon.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
