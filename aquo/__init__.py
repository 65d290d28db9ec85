"""
Aquo administration core.

Validation and consistency engine behind the user and water-distribution
site administration screens: payload rules, sector manager links, access
policy and the mutate-then-refetch synchronizer over the remote store.
"""

__version__ = "0.1.0"
