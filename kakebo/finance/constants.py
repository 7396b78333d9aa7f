"""
Kakebo finance constants - categories and keyword filters.

Tools speak English category names to the model; the data store keeps
the Spanish Kakebo names.
"""

from typing import Dict, List

CATEGORIES = ("survival", "optional", "culture", "extra")

CATEGORY_TO_DB: Dict[str, str] = {
    "survival": "supervivencia",
    "optional": "opcional",
    "culture": "cultura",
    "extra": "extra",
}

DB_TO_CATEGORY: Dict[str, str] = {v: k for k, v in CATEGORY_TO_DB.items()}

# cycle_budgets / user_settings column per category
BUDGET_COLUMNS: Dict[str, str] = {
    category: f"budget_{db_name}" for category, db_name in CATEGORY_TO_DB.items()
}

CATEGORY_LABELS_ES: Dict[str, str] = {
    "survival": "supervivencia",
    "optional": "opcional",
    "culture": "cultura",
    "extra": "extra",
    "all": "todas las categorías",
}

# Subcategory keyword lists matched against expense notes
SEMANTIC_KEYWORDS: Dict[str, List[str]] = {
    "comida": [
        "supermercado", "mercadona", "aldi", "lidl", "carrefour", "dia", "consum",
        "restaurante", "bar", "cafetería", "café", "bocata", "bocadillo",
        "cena", "comida", "almuerzo", "desayuno", "merienda", "tapas",
        "food", "lunch", "dinner", "breakfast",
        "pizza", "burger", "kebab", "sushi", "paella",
        "glovo", "uber eats", "just eat", "deliveroo",
    ],
    "transporte": [
        "metro", "autobús", "bus", "taxi", "uber", "cabify", "bolt",
        "gasolina", "combustible", "diesel", "parking", "aparcamiento", "peaje",
        "bici", "patinete", "moto", "coche", "tren", "renfe", "ave", "billete",
    ],
    "salud": [
        "farmacia", "médico", "doctor", "hospital", "clínica", "psicólogo",
        "terapia", "fisio", "dentista", "óptica", "seguro médico", "medicina",
        "medicamento", "consulta", "analítica",
    ],
    "vivienda": [
        "alquiler", "renta", "hipoteca", "luz", "electricidad", "agua", "gas",
        "internet", "wifi", "fibra", "comunidad", "basura", "seguro hogar",
        "fontanero", "electricista",
    ],
    "ocio": [
        "cine", "teatro", "concierto", "festival", "fiesta", "discoteca",
        "pub", "copas", "museo", "exposición", "videojuegos", "steam",
        "spotify", "netflix", "hbo", "disney", "gimnasio", "gym", "piscina",
    ],
    "educacion": [
        "libro", "libros", "ebook", "librería", "curso", "clase", "clases",
        "formación", "máster", "master", "academia", "universidad", "matrícula",
        "udemy", "coursera", "domestika",
    ],
    "suscripciones": [
        "suscripción", "subscripción", "mensualidad", "cuota", "spotify",
        "netflix", "hbo", "disney", "amazon prime", "youtube premium",
        "apple music", "google one", "gimnasio", "gym",
    ],
    "vicios": [
        "tabaco", "cigarros", "cigarrillos", "vaper", "vape", "alcohol",
        "cerveza", "vino", "whisky", "lotería", "euromillones", "apuestas", "casino",
    ],
}

MAX_ANALYSIS_LIMIT = 50
MIN_HISTORY_FOR_ANOMALIES = 20
