import csv
import re
from io import StringIO
from typing import Sequence

from schemas import TransactionOut


def sanitize_csv_value(value: str) -> str:
    """
    Sanitize CSV values to prevent formula injection by prefixing dangerous patterns with tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()

    formula_triggers = ("=", "+", "-", "@", "\t", "\r")

    if value.startswith(formula_triggers):
        return "\t" + value

    dangerous_patterns = [
        r"^cmd\s*",
        r"^powershell\s*",
        r"^bash\s*",
        r"^sh\s*",
        r"^\.",
        r"^http[s]?://",
    ]

    for pattern in dangerous_patterns:
        if re.match(pattern, value, re.IGNORECASE):
            return "\t" + value

    return value


def export_report_transactions(transactions: Sequence[TransactionOut]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["Date", "Type", "Amount", "Category", "Description", "Notes"])
    for txn in transactions:
        writer.writerow(
            [
                txn.date.isoformat(),
                txn.type,
                f"{txn.amount:.2f}",
                sanitize_csv_value(txn.category_name or ""),
                sanitize_csv_value(txn.description),
                sanitize_csv_value(txn.notes or ""),
            ]
        )
    return output.getvalue()
