"""CLI package for crmdesk.

The main Typer app is created in app.py; command modules register their
sub-apps on import.
"""

# Import command modules to register commands with the app
import crmdesk.cli.commands_crm  # noqa: F401, E402
import crmdesk.cli.commands_reports  # noqa: F401, E402
from crmdesk.cli.app import app

__all__ = ["app"]
