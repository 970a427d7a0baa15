from __future__ import annotations

import math
import re
from decimal import Decimal
from numbers import Integral, Real

import pandas as pd

from logic.modelos import MovimientoBancario


CENTIMOS = Decimal("0.01")
_SOLO_MILES = re.compile(r"^-?\d{1,3}(\.\d{3})+$")


def limpiar_importe_serie(serie: pd.Series) -> pd.Series:
    """Convierte textos tipo ``"-1.000,50"`` o ``"$ 250"`` en números; lo ilegible queda NaN."""
    if pd.api.types.is_numeric_dtype(serie):
        return serie.astype(float)

    def _limpiar(valor):
        if pd.isna(valor):
            return None
        if isinstance(valor, Real):
            return float(valor)
        texto = "".join(ch for ch in str(valor) if ch.isdigit() or ch in ",.-")
        # Formato europeo: el punto separa miles y la coma los decimales
        if "," in texto:
            texto = texto.replace(".", "").replace(",", ".")
        elif _SOLO_MILES.match(texto):
            texto = texto.replace(".", "")
        return texto

    return pd.to_numeric(serie.map(_limpiar), errors="coerce")


def _normalizar_texto(valor) -> str:
    """Devuelve siempre texto sin sufijos `.0` cuando provienen de números."""
    if valor is None or (not isinstance(valor, str) and pd.isna(valor)):
        return ""
    if isinstance(valor, str):
        return valor.strip()
    if isinstance(valor, Integral):
        return str(int(valor))
    if isinstance(valor, Real):
        numero = float(valor)
        if math.isfinite(numero) and numero.is_integer():
            return str(int(numero))
        return str(valor)
    return str(valor)


def movimientos_desde_dataframe(
    df: pd.DataFrame,
    col_fecha: str = "fecha",
    col_importe: str = "importe",
    col_descripcion: str | None = "descripcion",
    col_referencia: str | None = "referencia",
) -> list[MovimientoBancario]:
    """Filas de extracto ya leídas -> movimientos pendientes sin id.

    Se descartan las filas sin fecha o importe legibles y las de importe cero.
    """
    faltan = [c for c in (col_fecha, col_importe) if c not in df.columns]
    if faltan:
        raise ValueError(f"Faltan columnas en el extracto: {', '.join(faltan)}")

    fechas = pd.to_datetime(df[col_fecha], errors="coerce", dayfirst=False).dt.floor("d")
    importes = limpiar_importe_serie(df[col_importe]).round(2)
    vacias = pd.Series([""] * len(df), index=df.index)
    descs = df[col_descripcion].map(_normalizar_texto) if col_descripcion in df.columns else vacias
    refs = df[col_referencia].map(_normalizar_texto) if col_referencia in df.columns else vacias

    out: list[MovimientoBancario] = []
    for f, imp, d, r in zip(fechas, importes, descs, refs):
        if pd.isna(f) or pd.isna(imp) or float(imp) == 0.0:
            continue
        out.append(MovimientoBancario(
            id="",
            fecha=f.date(),
            importe=Decimal(str(float(imp))).quantize(CENTIMOS),
            descripcion=d,
            referencia=r or None,
        ))
    return out
