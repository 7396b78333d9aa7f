"""
Finance write tools - transactions, budgets, what-if scenarios and search
feedback.

Every tool here requires confirmation and carries a template that renders
the pending call for the user. Arguments are validated before the first
store call, so a rejected call never writes anything.
"""

import logging
from datetime import date
from typing import Annotated, Any, Dict, List, Literal, Optional

from dateutil.relativedelta import relativedelta

from ..errors import ToolArgumentError
from ..models import ToolContext
from ..tool_decorator import tool
from .analysis import money
from .common import db_category, get_store, normalize_query, today
from .constants import BUDGET_COLUMNS, CATEGORIES, CATEGORY_LABELS_ES
from .periods import current_cycle, parse_iso_date

logger = logging.getLogger(__name__)

CategoryArg = Literal["survival", "optional", "culture", "extra"]


def _euros(value: Any) -> str:
    """50 -> "50€", 12.5 -> "12.5€"."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return f"{value}€"
    if number.is_integer():
        return f"{int(number)}€"
    return f"{round(number, 2)}€"


def _label(category: Optional[str]) -> str:
    return CATEGORY_LABELS_ES.get(category or "", category or "")


def _require_positive(value: Any, message: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ToolArgumentError(message)
    if number <= 0:
        raise ToolArgumentError(message)
    return number


def _require_text(value: Optional[str], message: str) -> str:
    if value is None or not str(value).strip():
        raise ToolArgumentError(message)
    return str(value).strip()


# =============================================================================
# Confirmation templates
# =============================================================================


def _describe_create(args: Dict[str, Any]) -> str:
    kind = "ingreso" if args.get("type") == "income" else "gasto"
    text = f"¿Confirmas registrar un {kind} de {_euros(args['amount'])}"
    if args.get("category"):
        text += f" en {_label(args['category'])}"
    if args.get("concept"):
        text += f' ("{args["concept"]}")'
    if args.get("date"):
        text += f" con fecha {args['date']}"
    return text + "?"


def _describe_update(args: Dict[str, Any]) -> str:
    changes = []
    if args.get("amount") is not None:
        changes.append(f"importe a {_euros(args['amount'])}")
    if args.get("concept"):
        changes.append(f'concepto a "{args["concept"]}"')
    if args.get("category"):
        changes.append(f"categoría a {_label(args['category'])}")
    if args.get("date"):
        changes.append(f"fecha a {args['date']}")
    kind = "el ingreso" if args.get("type") == "income" else "el gasto"
    if not changes:
        return f"¿Confirmas modificar {kind}?"
    return f"¿Confirmas cambiar {kind}: " + ", ".join(changes) + "?"


def _describe_budget(args: Dict[str, Any]) -> str:
    category = args.get("category")
    if category == "all":
        target = f"{_euros(args['amount'])} para todas las categorías"
    else:
        target = f"{_euros(args['amount'])} para {_label(category)}"
    return f"¿Confirmas establecer el presupuesto en {target}?"


def _describe_whatif(args: Dict[str, Any]) -> str:
    text = f'¿Confirmas crear el escenario "{args["name"]}" de {_euros(args["estimatedCost"])}'
    if args.get("targetDate"):
        text += f" para el {args['targetDate']}"
    return text + "?"


def _describe_feedback(args: Dict[str, Any]) -> str:
    parts = []
    if args.get("incorrectExpenses"):
        parts.append(f"excluir {len(args['incorrectExpenses'])} gasto(s)")
    if args.get("correctExpenses"):
        parts.append(f"marcar {len(args['correctExpenses'])} gasto(s) como correctos")
    changes = " y ".join(parts) or "sin cambios"
    return f'¿Confirmas guardar la corrección para "{args["query"]}": {changes}?'


# =============================================================================
# createTransaction
# =============================================================================


@tool(
    name="createTransaction",
    requires_confirmation=True,
    confirmation_template=_describe_create,
)
async def create_transaction(
    type: Annotated[Literal["expense", "income"], "Transaction type"],
    amount: Annotated[float, "Amount in euros, greater than 0", {"exclusiveMinimum": 0}],
    concept: Annotated[str, "Short description (e.g. 'Mercadona')"],
    category: Annotated[CategoryArg, "Kakebo category"],
    date: Annotated[Optional[str], "Date YYYY-MM-DD (defaults to today)"] = None,
    notes: Annotated[Optional[str], "Additional notes"] = None,
    *,
    context: ToolContext,
) -> Dict[str, Any]:
    """Register a new expense or income for the user."""
    store = get_store(context)
    amount = _require_positive(amount, "El importe debe ser mayor que 0")
    concept = _require_text(concept, "El concepto no puede estar vacío")
    if type not in ("expense", "income"):
        raise ToolArgumentError("El tipo debe ser 'expense' o 'income'")
    db_name = db_category(category, allow_all=False)
    if db_name is None:
        raise ToolArgumentError("La categoría es obligatoria")
    on_date = parse_iso_date(date, "date") or today(context)

    note = concept if not notes else f"{concept} - {notes.strip()}"
    row = await store.insert_transaction(context.user_id, type, amount, note, db_name, on_date)
    logger.info(f"Created {type} {row.get('id')} for user {context.user_id}")

    if type == "expense":
        message = f'Gasto de {_euros(amount)} registrado en {_label(category)}: "{concept}"'
    else:
        message = f'Ingreso de {_euros(amount)} registrado: "{concept}"'
    return {
        "success": True,
        "transactionId": str(row.get("id", "")),
        "type": type,
        "amount": amount,
        "concept": concept,
        "category": category,
        "date": on_date.isoformat(),
        "message": message,
    }


# =============================================================================
# updateTransaction
# =============================================================================


@tool(
    name="updateTransaction",
    requires_confirmation=True,
    confirmation_template=_describe_update,
)
async def update_transaction(
    transactionId: Annotated[str, "Id of the transaction to change"],
    type: Annotated[Literal["expense", "income"], "Transaction type"] = "expense",
    amount: Annotated[Optional[float], "New amount in euros"] = None,
    concept: Annotated[Optional[str], "New description"] = None,
    category: Annotated[Optional[CategoryArg], "New Kakebo category"] = None,
    date: Annotated[Optional[str], "New date YYYY-MM-DD"] = None,
    *,
    context: ToolContext,
) -> Dict[str, Any]:
    """Change the amount, concept, category or date of an existing transaction."""
    store = get_store(context)
    transaction_id = _require_text(transactionId, "Falta el identificador de la transacción")
    if amount is None and concept is None and category is None and date is None:
        raise ToolArgumentError(
            "Debes especificar al menos un campo a actualizar (amount, concept, category o date)"
        )

    updates: Dict[str, Any] = {}
    updated_fields = []
    if amount is not None:
        updates["amount"] = _require_positive(amount, "El importe debe ser mayor que 0")
        updated_fields.append("importe")
    if concept is not None:
        updates["note"] = _require_text(concept, "El concepto no puede estar vacío")
        updated_fields.append("concepto")
    if category is not None:
        updates["category"] = db_category(category, allow_all=False)
        updated_fields.append("categoría")
    if date is not None:
        updates["date"] = parse_iso_date(date, "date")
        updated_fields.append("fecha")

    kind = "income" if type == "income" else "expense"
    await store.update_transaction(context.user_id, kind, transaction_id, updates)
    logger.info(f"Updated {kind} {transaction_id} for user {context.user_id}: {updated_fields}")

    return {
        "success": True,
        "transactionId": transaction_id,
        "updatedFields": updated_fields,
        "message": f"Transacción actualizada: {', '.join(updated_fields)} modificado(s)",
    }


# =============================================================================
# setBudget
# =============================================================================


@tool(
    name="setBudget",
    requires_confirmation=True,
    confirmation_template=_describe_budget,
)
async def set_budget(
    category: Annotated[Literal["survival", "optional", "culture", "extra", "all"], "Category, or 'all'"],
    amount: Annotated[float, "Budget in euros (0 or more)", {"minimum": 0}],
    cycleStart: Annotated[Optional[str], "Cycle start YYYY-MM-DD (defaults to current cycle)"] = None,
    cycleEnd: Annotated[Optional[str], "Cycle end YYYY-MM-DD (defaults to current cycle)"] = None,
    *,
    context: ToolContext,
) -> Dict[str, Any]:
    """Set the budget of one category (or all of them) for a payment cycle."""
    store = get_store(context)
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise ToolArgumentError("El presupuesto debe ser un número")
    if amount < 0:
        raise ToolArgumentError("El presupuesto no puede ser negativo")
    if category != "all":
        db_category(category, allow_all=False)

    start = parse_iso_date(cycleStart, "cycleStart")
    end = parse_iso_date(cycleEnd, "cycleEnd")
    if start is None or end is None:
        cycle = current_cycle(await store.get_payment_cycle(context.user_id), today(context))
        start, end = cycle.start, cycle.end
    if start > end:
        raise ToolArgumentError("El inicio del ciclo no puede ser posterior al final")

    names = CATEGORIES if category == "all" else (category,)
    row = await store.upsert_cycle_budget(
        context.user_id, start, end, {BUDGET_COLUMNS[name]: amount for name in names}
    )
    total = money(sum(float(row.get(BUDGET_COLUMNS[name]) or 0) for name in CATEGORIES))
    logger.info(f"Budget set for user {context.user_id}: {category}={amount} ({start} - {end})")

    return {
        "success": True,
        "category": category,
        "amount": amount,
        "cycleStart": start.isoformat(),
        "cycleEnd": end.isoformat(),
        "totalBudget": total,
        "message": f"Presupuesto actualizado: {_label(category)} = {_euros(amount)} (Total: {_euros(total)})",
    }


# =============================================================================
# calculateWhatIf
# =============================================================================


def _months_until(target: date, ref: date) -> int:
    delta = relativedelta(target.replace(day=1), ref.replace(day=1))
    return max(0, delta.years * 12 + delta.months)


def _savings_advice(cost: float, monthly: Optional[float], months: Optional[int], has_target: bool) -> str:
    if months is not None and months == 0:
        return f"La fecha objetivo es muy próxima. Necesitarías ahorrar {_euros(cost)} de inmediato."
    if monthly is not None and months == 1:
        return f"Tienes 1 mes para ahorrar {_euros(monthly)}/mes."
    if monthly is not None:
        return f"Para alcanzar tu objetivo, necesitas ahorrar {_euros(monthly)} al mes durante {months} meses."
    if has_target:
        return "No se pudo calcular el ahorro mensual necesario. Verifica la fecha objetivo."
    return "Define una fecha objetivo para calcular cuánto debes ahorrar cada mes."


@tool(
    name="calculateWhatIf",
    requires_confirmation=True,
    confirmation_template=_describe_whatif,
)
async def calculate_what_if(
    name: Annotated[str, "Scenario name (e.g. 'Vacaciones en agosto')"],
    estimatedCost: Annotated[float, "Estimated cost in euros", {"exclusiveMinimum": 0}],
    category: Annotated[CategoryArg, "Kakebo category the cost belongs to"] = "extra",
    targetDate: Annotated[Optional[str], "Target date YYYY-MM-DD"] = None,
    description: Annotated[Optional[str], "Optional description"] = None,
    *,
    context: ToolContext,
) -> Dict[str, Any]:
    """Plan a future expense and compute how much to save per month to afford it."""
    store = get_store(context)
    cost = _require_positive(estimatedCost, "El coste estimado debe ser mayor que 0")
    name = _require_text(name, "El nombre del escenario no puede estar vacío")
    db_name = db_category(category, allow_all=False)
    target = parse_iso_date(targetDate, "targetDate")

    months = _months_until(target, today(context)) if target else None
    monthly = money(cost / months) if months else None

    row = await store.insert_scenario(context.user_id, {
        "name": name,
        "description": description or None,
        "estimated_cost": cost,
        "category": db_name,
        "target_date": target,
        "monthly_savings_needed": monthly,
        "status": "planned",
    })
    logger.info(f"Scenario {row.get('id')} created for user {context.user_id}: {name} ({cost})")

    return {
        "success": True,
        "scenarioId": str(row.get("id", "")),
        "name": name,
        "estimatedCost": cost,
        "category": category,
        "targetDate": target.isoformat() if target else None,
        "monthlySavingsNeeded": monthly,
        "monthsRemaining": months,
        "message": f'Escenario creado: "{name}" ({_euros(cost)})',
        "advice": _savings_advice(cost, monthly, months, target is not None),
    }



# =============================================================================
# submitFeedback
# =============================================================================


@tool(
    name="submitFeedback",
    requires_confirmation=True,
    confirmation_template=_describe_feedback,
)
async def submit_feedback(
    query: Annotated[str, "The search text the feedback applies to"],
    correctExpenses: Annotated[Optional[List[str]], "Ids of results that do match the search"] = None,
    incorrectExpenses: Annotated[Optional[List[str]], "Ids of results that do not match the search"] = None,
    *,
    context: ToolContext,
) -> Dict[str, Any]:
    """Remember which searchExpenses results were right or wrong so later searches improve."""
    store = get_store(context)
    normalized = normalize_query(_require_text(query, "La búsqueda no puede estar vacía"))
    correct = [str(i) for i in (correctExpenses or []) if str(i).strip()]
    incorrect = [str(i) for i in (incorrectExpenses or []) if str(i).strip()]
    if not correct and not incorrect:
        raise ToolArgumentError("Indica al menos un gasto correcto o incorrecto")
    overlap = set(correct) & set(incorrect)
    if overlap:
        raise ToolArgumentError(
            f"Un gasto no puede ser correcto e incorrecto a la vez: {', '.join(sorted(overlap))}"
        )

    feedback = {expense_id: "correct" for expense_id in correct}
    feedback.update({expense_id: "incorrect" for expense_id in incorrect})
    saved = await store.upsert_search_feedback(context.user_id, normalized, feedback)
    logger.info(
        f"Search feedback for user {context.user_id} on '{normalized}': "
        f"{len(correct)} correct, {len(incorrect)} incorrect"
    )

    return {
        "success": True,
        "query": normalized,
        "saved": saved,
        "message": f'Aprendido: {len(correct)} correctos, {len(incorrect)} incorrectos para "{normalized}"',
    }


WRITE_TOOLS = [
    create_transaction,
    update_transaction,
    set_budget,
    calculate_what_if,
    submit_feedback,
]
