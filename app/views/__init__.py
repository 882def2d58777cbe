"""
View helpers shared by the page routers.
"""

from .state import ViewState, ViewStatus, load_view
from .bulk import BulkActionState, BulkActionType, IllegalTransitionError, execute_bulk_action
from .wizard import FormWizard, WizardStep, listing_wizard, agent_registration_wizard

__all__ = [
    "ViewState",
    "ViewStatus",
    "load_view",
    "BulkActionState",
    "BulkActionType",
    "IllegalTransitionError",
    "execute_bulk_action",
    "FormWizard",
    "WizardStep",
    "listing_wizard",
    "agent_registration_wizard",
]
