"""
Casos de uso de la aplicacion.
"""
from .schema_use_cases import SchemaUseCases
from .pull_use_cases import ImportTuning, PullUseCases, WebhookResult

__all__ = ["SchemaUseCases", "PullUseCases", "ImportTuning", "WebhookResult"]
