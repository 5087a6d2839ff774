from models.compliance import ComplianceCheck

__all__ = ["ComplianceCheck"]
