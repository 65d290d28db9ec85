"""
Use Cases Layer (administration operations)

Structure
---------
usecases/
├── common.py   # ConfirmedDeletion + shared local outcomes
├── sites.py    # SiteAdministration
└── users.py    # UserAdministration

Usage
-----
    from aquo.application.usecases import SiteAdministration, ConfirmedDeletion
"""

from .common import ConfirmedDeletion
from .sites import SiteAdministration
from .users import UserAdministration

__all__ = [
    "ConfirmedDeletion",
    "SiteAdministration",
    "UserAdministration",
]
