from typing import Optional


def calculate_installments(
    price: float,
    max_installments: int = 12,
    min_installment_value: float = 10,
) -> list[dict]:
    result = []

    for i in range(1, max_installments + 1):
        value = price / i
        if i > 1 and value < min_installment_value:
            break
        result.append({
            "installments": i,
            "value": round(value, 2),
            "total": price,
        })

    return result


def format_brl(value: float) -> str:
    return f"{value:.2f}".replace(".", ",")


def get_installment_label(price: float) -> Optional[str]:
    if price < 20:
        return None

    plan = calculate_installments(price)
    best = plan[-1]
    if best["installments"] <= 1:
        return None

    return f"ou {best['installments']}x de R$ {format_brl(best['value'])}"
