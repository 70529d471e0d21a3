from typing import Optional

from convo_core.schemas.catalog import CatalogFacts, CatalogOption

MAX_RENDERED_OPTIONS = 5

HEADERS = {
    "es": (
        "HECHOS_DE_CATALOGO_DESDE_DB",
        "Usa SOLO esto para precio/duración/qué incluye. Si falta, haz UNA pregunta.",
    ),
    "en": (
        "DATABASE_CATALOG_FACTS",
        "Use ONLY this info for price/duration/includes. If missing, ask ONE question.",
    ),
}

OPTIONS_RULE = {
    "es": "Regla: Si pidió precio/qué incluye, responde usando UNA opción o pide que elija una.",
    "en": "Rule: If user asked price/includes, answer using ONE best matching option or ask them to pick one.",
}


def _clean(value) -> str:
    return str(value).strip() if value is not None else ""


def format_price(price: Optional[float], currency: Optional[str]) -> str:
    """"$25.00 USD" for dollars, "25.00 EUR" otherwise, "25.00" with no currency."""
    if price is None:
        return ""
    amount = f"{float(price):.2f}"
    if not currency:
        return amount
    if currency.upper() == "USD":
        return f"${amount} USD"
    return f"{amount} {currency.upper()}"


def _option_line(option: CatalogOption) -> list[str]:
    row = [f"- {_clean(option.label) or 'Option'}"]
    if option.price is not None:
        row.append(format_price(option.price, option.currency))
    if option.duration_min is not None:
        row.append(f"{option.duration_min} min")
    if _clean(option.url):
        row.append(_clean(option.url))
    lines = [" | ".join(row)]
    if _clean(option.description):
        lines.append(f"  INCLUDES: {_clean(option.description)}")
    return lines


def render_catalog_facts(facts: Optional[CatalogFacts], lang: str = "es") -> str:
    """Render facts as the prompt block handed to the external responder.

    Only fields that are present are written out.
    """
    if facts is None:
        return ""

    title, instruction = HEADERS.get(lang, HEADERS["es"])
    lines = [title, instruction]

    if _clean(facts.label):
        lines.append(f"ITEM: {_clean(facts.label)}")
    if _clean(facts.url):
        lines.append(f"LINK: {_clean(facts.url)}")

    if facts.kind != "options":
        if facts.price is not None:
            lines.append(f"PRICE: {format_price(facts.price, facts.currency)}")
        if facts.duration_min is not None:
            lines.append(f"DURATION_MIN: {facts.duration_min}")
        if _clean(facts.description):
            lines.append(f"INCLUDES: {_clean(facts.description)}")
        return "\n".join(lines)

    if facts.options:
        lines.append("OPTIONS:" if lang == "en" else "OPCIONES:")
        for option in facts.options[:MAX_RENDERED_OPTIONS]:
            lines.extend(_option_line(option))
        lines.append(OPTIONS_RULE.get(lang, OPTIONS_RULE["es"]))
    return "\n".join(lines)
