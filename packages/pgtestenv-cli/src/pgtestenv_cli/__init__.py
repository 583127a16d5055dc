"""pgtestenv-cli: Command-line interface for the database test environment.

Commands:
    probe: Show the target environment and the tests it excludes
    plan: List the provisioning commands without running them
    provision: Recreate the fixtures, exiting 1 on the first failure
"""

from __future__ import annotations

__version__ = "0.1.0"
