import sqlite3
from typing import Iterable

import pandas as pd

INVOICE_CSV_COLUMNS = ["id", "client_name", "email", "date", "status", "total_amount", "created_at"]


def build_invoices_csv(rows: Iterable[sqlite3.Row | dict]) -> bytes:
    df = pd.DataFrame([dict(row) for row in rows], columns=INVOICE_CSV_COLUMNS)
    df["total_amount"] = pd.to_numeric(df["total_amount"], errors="coerce").astype(float).round(2)
    return df.to_csv(index=False).encode("utf-8")
