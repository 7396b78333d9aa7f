"""
Tool error classification and user-facing messages.

Raw exception text stays in the logs; only the friendly Spanish message
ends up in ToolResult.error and, from there, in the model prompt.
"""

from typing import Dict

from ..errors import NotFoundError, ToolArgumentError

ERROR_DATABASE = "database"
ERROR_VALIDATION = "validation"
ERROR_NOT_FOUND = "not_found"
ERROR_PERMISSION = "permission"
ERROR_UNKNOWN = "unknown"

_KEYWORDS = (
    (ERROR_DATABASE, ("database", "connection", "query", "timeout", "timed out", "postgres")),
    (ERROR_VALIDATION, ("invalid", "validation", "must be", "required", "debe", "no puede")),
    (ERROR_NOT_FOUND, ("not found", "no se encontró", "does not exist")),
    (ERROR_PERMISSION, ("permission", "unauthorized", "forbidden", "permiso")),
)

TOOL_FRIENDLY_NAMES: Dict[str, str] = {
    "analyzeSpendingPattern": "análisis de gastos",
    "getBudgetStatus": "estado de presupuesto",
    "detectAnomalies": "detección de anomalías",
    "predictMonthlySpending": "proyección de gastos",
    "getSpendingTrends": "tendencias de gasto",
    "searchExpenses": "búsqueda de gastos",
    "getCurrentCycle": "ciclo actual",
    "createTransaction": "registro de transacción",
    "updateTransaction": "actualización de transacción",
    "setBudget": "configuración de presupuesto",
    "calculateWhatIf": "simulación de escenario",
    "submitFeedback": "guardado de correcciones",
}


def classify_error(error: BaseException) -> str:
    """Bucket an exception into database/validation/not_found/permission/unknown."""
    if isinstance(error, NotFoundError):
        return ERROR_NOT_FOUND
    if isinstance(error, ToolArgumentError):
        return ERROR_VALIDATION
    if isinstance(error, TimeoutError):
        return ERROR_DATABASE

    text = str(error).lower()
    for error_type, keywords in _KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return error_type
    return ERROR_UNKNOWN


def user_friendly_error(tool_name: str, error_type: str) -> str:
    friendly = TOOL_FRIENDLY_NAMES.get(tool_name, tool_name)
    if error_type == ERROR_DATABASE:
        return (
            f"No pude acceder a los datos para {friendly}. "
            "Por favor, inténtalo de nuevo en unos momentos."
        )
    if error_type == ERROR_VALIDATION:
        return f"Los parámetros para {friendly} no son válidos."
    if error_type == ERROR_NOT_FOUND:
        return f"No encontré la información solicitada para {friendly}."
    if error_type == ERROR_PERMISSION:
        return f"No tienes permiso para realizar {friendly}."
    return f"Hubo un problema con {friendly}. Por favor, inténtalo de nuevo."


def tool_error_message(tool_name: str, error: BaseException) -> str:
    """User-safe text for a failed tool call.

    Argument errors are raised with a message written for the user and
    are passed through as-is.
    """
    if isinstance(error, ToolArgumentError):
        return str(error)
    return user_friendly_error(tool_name, classify_error(error))
