from __future__ import annotations
import io
from dataclasses import asdict
from typing import Iterable

import pandas as pd
from openpyxl.styles import Font

from logic.modelos import MovimientoBancario, Sugerencia


FORMATO_FECHA = "DD/MM/YYYY"

COLUMNAS_SUGERENCIAS = {
    "puntaje": "Puntaje",
    "tipo": "Tipo",
    "entidad": "Entidad",
    "referencia": "Referencia",
    "fecha": "Fecha",
    "importe": "Importe",
    "id": "Id",
}

COLUMNAS_MOVIMIENTOS = {
    "fecha": "Fecha",
    "importe": "Importe",
    "descripcion": "Descripción",
    "referencia": "Referencia",
    "estado": "Estado",
    "id": "Id",
}


def _tabla(filas: Iterable, columnas: dict[str, str]) -> pd.DataFrame:
    df = pd.DataFrame([asdict(f) for f in filas], columns=list(columnas))
    df["fecha"] = pd.to_datetime(df["fecha"])
    df["importe"] = df["importe"].astype(float)
    return df.rename(columns=columnas)


def sugerencias_a_dataframe(sugerencias: Iterable[Sugerencia]) -> pd.DataFrame:
    return _tabla(sugerencias, COLUMNAS_SUGERENCIAS)


def movimientos_a_dataframe(movimientos: Iterable[MovimientoBancario]) -> pd.DataFrame:
    return _tabla(movimientos, COLUMNAS_MOVIMIENTOS)


def dataframe_a_excel_bytes(
    df: pd.DataFrame,
    sheet_name: str = "Conciliacion",
    formato_columnas_fecha: dict[str, str] | None = None
) -> bytes:
    """
    Exporta un DataFrame a Excel conservando los tipos fecha (no texto).
    Si se pasa `formato_columnas_fecha` con {nombre_columna: "DD/MM/YYYY"}, aplica number_format.
    """
    buff = io.BytesIO()
    with pd.ExcelWriter(buff, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
        ws = writer.sheets[sheet_name]
        for cell in ws[1]:
            cell.font = Font(bold=True)
        if formato_columnas_fecha:
            headers = [c.value for c in ws[1]]
            for col_name, fmt in formato_columnas_fecha.items():
                if col_name in headers:
                    col_idx = headers.index(col_name) + 1
                    for (cell,) in ws.iter_rows(min_row=2, min_col=col_idx, max_col=col_idx):
                        cell.number_format = fmt
    return buff.getvalue()
