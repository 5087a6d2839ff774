class ComplianceError(Exception):
    """Base class for caller contract violations in the compliance core.

    Messy or missing certificate data never raises; it becomes a non-compliant
    field. These exceptions only signal a bug in the calling code.
    """


class TemplateMismatchError(ComplianceError):
    """A requirement template for another entity type was passed in."""

    def __init__(self, template_entity_type, entity_type):
        self.template_entity_type = template_entity_type
        self.entity_type = entity_type
        super().__init__(
            f"Requirement template is for {template_entity_type} but was evaluated for {entity_type}"
        )


class InvalidEvaluationTimeError(ComplianceError):
    """The evaluation time is before the Unix epoch."""
