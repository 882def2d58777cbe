"""
Multi-step forms.

A wizard is rebuilt on every POST from the submitted fields: earlier steps are
carried forward as hidden inputs, so no wizard state lives in the session.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from app.utils.validators import FormValidator

FieldErrors = Dict[str, str]
StepValidator = Callable[[Mapping[str, Any]], FieldErrors]

STEP_FIELD = "_step"
NAV_FIELD = "nav"
CONTROL_FIELDS = (STEP_FIELD, NAV_FIELD)


def _no_errors(data: Mapping[str, Any]) -> FieldErrors:
    return {}


@dataclass(frozen=True)
class WizardStep:
    name: str
    title: str
    fields: Sequence[str] = ()
    validate: StepValidator = _no_errors


@dataclass
class FormWizard:
    """
    Ordered steps with per-step validation.

    `advance` validates the current step and moves on only when it is valid;
    `back` never validates. Data entered on any step is kept.
    """
    steps: Sequence[WizardStep]
    index: int = 0
    data: Dict[str, Any] = field(default_factory=dict)
    errors: FieldErrors = field(default_factory=dict)

    def __post_init__(self):
        if not self.steps:
            raise ValueError("A wizard needs at least one step")
        self.index = max(0, min(self.index, len(self.steps) - 1))

    @property
    def current(self) -> WizardStep:
        return self.steps[self.index]

    @property
    def step_number(self) -> int:
        return self.index + 1

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def is_first(self) -> bool:
        return self.index == 0

    @property
    def is_last(self) -> bool:
        return self.index == len(self.steps) - 1

    def update(self, data: Mapping[str, Any]) -> None:
        for key, value in data.items():
            if key not in CONTROL_FIELDS:
                self.data[key] = value

    def submit_step(self, data: Mapping[str, Any]) -> None:
        """Merge the current step's submission; its fields left out (unchecked boxes) are cleared."""
        for name in self.current.fields:
            if name not in data:
                self.data.pop(name, None)
        self.update(data)

    def validate_current(self) -> FieldErrors:
        self.errors = self.current.validate(self.data)
        return self.errors

    def advance(self, data: Optional[Mapping[str, Any]] = None) -> bool:
        """
        Merge submitted data, validate the current step and move forward.

        Returns:
            True when the step was valid; on the last step the wizard stays put
        """
        if data is not None:
            self.submit_step(data)
        if self.validate_current():
            return False
        if not self.is_last:
            self.index += 1
        return True

    def back(self, data: Optional[Mapping[str, Any]] = None) -> None:
        if data is not None:
            self.submit_step(data)
        self.errors = {}
        if not self.is_first:
            self.index -= 1

    def go_to(self, index: int) -> None:
        """Jump back to an earlier step, e.g. from the review step."""
        if 0 <= index < self.index:
            self.index = index
            self.errors = {}

    def validate_all(self) -> FieldErrors:
        """Run every step's validator, first error per field wins."""
        errors: FieldErrors = {}
        for step in self.steps:
            for key, message in step.validate(self.data).items():
                errors.setdefault(key, message)
        self.errors = errors
        return errors

    def hidden_fields(self) -> Dict[str, Any]:
        """Data of the steps other than the current one, rendered as hidden inputs."""
        own = set(self.current.fields)
        return {key: value for key, value in self.data.items() if key not in own}

    @classmethod
    def restore(cls, steps: Sequence[WizardStep], form: Mapping[str, Any]) -> "FormWizard":
        """Rebuild a wizard from a submitted form carrying `_step` and earlier data."""
        try:
            index = int(form.get(STEP_FIELD) or 0)
        except (TypeError, ValueError):
            index = 0
        wizard = cls(steps=steps, index=index)
        wizard.update(form)
        return wizard


# ========== Create listing ==========

def _number_errors(data: Mapping[str, Any], fields: Mapping[str, str]) -> FieldErrors:
    errors: FieldErrors = {}
    for name, label in fields.items():
        value = data.get(name)
        if value in (None, ""):
            continue
        try:
            if float(value) < 0:
                errors[name] = f"{label} cannot be negative"
        except (TypeError, ValueError):
            errors[name] = f"{label} must be a number"
    return errors


def validate_listing_basics(data: Mapping[str, Any]) -> FieldErrors:
    errors = _number_errors(data, {"price": "Price"})
    if data.get("listing_type") not in ("sale", "rent"):
        errors.setdefault("listing_type", "Choose sale or rent")
    return errors


def validate_listing_details(data: Mapping[str, Any]) -> FieldErrors:
    return _number_errors(data, {
        "bedrooms": "Bedrooms",
        "bathrooms": "Bathrooms",
        "square_footage": "Square footage",
        "lot_size": "Lot size",
        "year_built": "Year built",
        "parking_spaces": "Parking spaces",
    })


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def validate_listing_publish(data: Mapping[str, Any], photo_count: int) -> FieldErrors:
    """
    Rules a listing must meet before it is published.

    Drafts skip these rules.

    Args:
        data: Listing form data
        photo_count: Number of uploaded photos

    Returns:
        Field -> message mapping, empty when publishable
    """
    errors: FieldErrors = {}
    if len((data.get("title") or "").strip()) < 10:
        errors["title"] = "Title must be at least 10 characters"
    if len((data.get("description") or "").strip()) < 50:
        errors["description"] = "Description must be at least 50 characters"
    if _to_float(data.get("price")) <= 0:
        errors["price"] = "Price is required and must be greater than 0"
    if not (data.get("address_street") or "").strip():
        errors["address_street"] = "Street address is required"
    if not (data.get("address_city") or "").strip():
        errors["address_city"] = "City is required"
    if not (data.get("address_state") or "").strip():
        errors["address_state"] = "State is required"
    if not (data.get("address_zip") or "").strip():
        errors["address_zip"] = "ZIP code is required"
    if photo_count < 1:
        errors["photos"] = "At least 1 photo is required"
    return errors


LISTING_STEPS: List[WizardStep] = [
    WizardStep(
        "basics", "Basic information",
        ("title", "description", "listing_type", "property_type", "price", "currency", "rent_frequency"),
        validate_listing_basics,
    ),
    WizardStep(
        "location", "Location",
        ("address_street", "address_unit", "address_city", "address_state", "address_zip", "neighborhood"),
    ),
    WizardStep(
        "details", "Property details",
        ("bedrooms", "bathrooms", "square_footage", "lot_size", "year_built", "parking_spaces",
         "amenities", "interior_features", "exterior_features", "highlights",
         "furnished", "pet_friendly", "new_construction", "recently_renovated",
         "virtual_tour_available", "virtual_tour_url"),
        validate_listing_details,
    ),
    WizardStep("photos", "Photos", ("photo_urls",)),
    WizardStep("review", "Review & publish"),
]


def listing_wizard(form: Optional[Mapping[str, Any]] = None) -> FormWizard:
    if form is None:
        return FormWizard(steps=LISTING_STEPS, data={"listing_type": "sale", "property_type": "house"})
    return FormWizard.restore(LISTING_STEPS, form)


# ========== Agent registration ==========

def validate_agent_account(data: Mapping[str, Any]) -> FieldErrors:
    return (
        FormValidator(data)
        .email("email")
        .password("password")
        .passwords_match("password", "confirm_password")
        .required("full_name", message="Full name is required")
        .required("phone_number", message="Phone number is required")
        .errors
    )


def validate_agent_license(data: Mapping[str, Any]) -> FieldErrors:
    validator = (
        FormValidator(data)
        .required("license_number", message="License number is required")
        .required("license_state", message="License state is required")
        .required("agency_name", message="Agency name is required")
        .required("office_address_street", message="Office street address is required")
        .required("office_address_city", message="City is required")
        .required("office_address_state", message="State is required")
        .state_code("office_address_state")
        .required("office_address_zip", message="ZIP code is required")
        .required("years_experience", message="Years of experience is required")
    )
    zip_code = (data.get("office_address_zip") or "").strip()
    if zip_code and len(zip_code) < 5:
        validator.add_error("office_address_zip", "ZIP code must be at least 5 characters")
    if not data.get("license_document_url"):
        validator.add_error("license_document", "Please upload your license documentation")
    return validator.errors


def validate_agent_terms(data: Mapping[str, Any]) -> FieldErrors:
    return (
        FormValidator(data)
        .checked("terms_accepted", "You must agree to the Terms of Service and Commission Agreement")
        .errors
    )


AGENT_REGISTRATION_STEPS: List[WizardStep] = [
    WizardStep(
        "account", "Account",
        ("full_name", "email", "phone_number", "password", "confirm_password"),
        validate_agent_account,
    ),
    WizardStep(
        "license", "License & agency",
        ("license_number", "license_state", "agency_name", "office_address_street",
         "office_address_city", "office_address_state", "office_address_zip",
         "years_experience", "license_document_url"),
        validate_agent_license,
    ),
    WizardStep(
        "profile", "Profile",
        ("professional_title", "bio", "specializations", "service_areas", "terms_accepted"),
        validate_agent_terms,
    ),
]


def agent_registration_wizard(form: Optional[Mapping[str, Any]] = None) -> FormWizard:
    if form is None:
        return FormWizard(steps=AGENT_REGISTRATION_STEPS)
    return FormWizard.restore(AGENT_REGISTRATION_STEPS, form)


def form_to_dict(form: Any, list_fields: Sequence[str] = ()) -> Dict[str, Any]:
    """
    Flatten submitted form data; fields in `list_fields`, or sent more than
    once, become lists.
    """
    data: Dict[str, Any] = {}
    for key in dict.fromkeys(form.keys()):
        values = [v for v in form.getlist(key) if isinstance(v, str)]
        if key in list_fields or len(values) > 1:
            data[key] = [v for v in values if v]
        elif values:
            data[key] = values[0]
    return data
