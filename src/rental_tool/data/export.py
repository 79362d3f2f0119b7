"""
Result Export - serializes computed products for download.

The export sheet carries the selected-period view only; the detail frame
carries every period and backs the on-screen breakdown.
"""
import io
import logging
from datetime import date
from typing import Iterable, Optional

import pandas as pd

from ..engine.errors import ConfigurationError
from ..engine.models import ComputedProduct
from ..engine.rental_engine import round_half_up, to_decimal

logger = logging.getLogger(__name__)

EXPORT_SHEET_NAME = '렌탈 계산 결과'

EXPORT_COLUMNS = ['제품명', '모델명', '월 렌탈료(최종)', '렌탈 기간', '최종 렌탈료', '공급물대']

DETAIL_COLUMNS = {
    'product_name': '제품명',
    'model_name': '모델명',
    'price': '일시불단가',
    'supply_price': '공급단가',
    'adjusted_price': '조정단가',
    'period': '렌탈 기간(개월)',
    'discount_rate_percent': '할인률(%)',
    'fee_rate_percent': '렌탈수수료율(%)',
    'total_rental_fee': '총렌탈료',
    'monthly_rental_fee': '월 렌탈료',
    'final_monthly_rental_fee': '월 렌탈료(최종)',
    'final_total_rental_fee': '최종 렌탈료',
    'rental_company_profit': '렌탈사 수익',
    'supply_value': '공급물대',
}


def period_label(period: int) -> str:
    return f"{period}개월"


def export_frame(computed: Iterable[ComputedProduct], selected_period: int) -> pd.DataFrame:
    """
    Selected-period view: identity, final monthly fee, period, final total, supply value.

    Raises ConfigurationError if a product has no breakdown for the period.
    """
    rows = []
    for product in computed:
        breakdown = product.breakdown_for(selected_period)
        rows.append({
            '제품명': product.product_name,
            '모델명': product.model_name,
            '월 렌탈료(최종)': breakdown.final_monthly_rental_fee,
            '렌탈 기간': period_label(selected_period),
            '최종 렌탈료': breakdown.final_total_rental_fee,
            '공급물대': round_half_up(to_decimal(breakdown.supply_value)),
        })
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def detail_frame(computed: Iterable[ComputedProduct]) -> pd.DataFrame:
    """One row per product and period with every computed figure."""
    rows = []
    for product in computed:
        for breakdown in product.breakdowns:
            rows.append({
                'product_name': product.product_name,
                'model_name': product.model_name,
                'price': product.price,
                'supply_price': product.supply_price,
                'adjusted_price': product.adjusted_price,
                'period': breakdown.period,
                'discount_rate_percent': breakdown.discount_rate_percent,
                'fee_rate_percent': breakdown.fee_rate_percent,
                'total_rental_fee': breakdown.total_rental_fee,
                'monthly_rental_fee': breakdown.monthly_rental_fee,
                'final_monthly_rental_fee': breakdown.final_monthly_rental_fee,
                'final_total_rental_fee': breakdown.final_total_rental_fee,
                'rental_company_profit': breakdown.rental_company_profit,
                'supply_value': breakdown.supply_value,
            })
    return pd.DataFrame(rows, columns=list(DETAIL_COLUMNS)).rename(columns=DETAIL_COLUMNS)


def export_filename(selected_period: int, on_date: Optional[date] = None, fmt: str = 'xlsx') -> str:
    """렌탈계산결과_{period}개월_{YYYY-MM-DD}.{fmt}"""
    on_date = on_date or date.today()
    return f"렌탈계산결과_{period_label(selected_period)}_{on_date.isoformat()}.{fmt}"


def export_bytes(computed: Iterable[ComputedProduct], selected_period: int, fmt: str = 'xlsx') -> bytes:
    """Serialize the selected-period view as an xlsx workbook or UTF-8 CSV."""
    df = export_frame(computed, selected_period)

    if fmt == 'csv':
        # BOM so spreadsheet apps detect UTF-8 Korean headers
        data = df.to_csv(index=False).encode('utf-8-sig')
    elif fmt == 'xlsx':
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name=EXPORT_SHEET_NAME)
        data = buffer.getvalue()
    else:
        raise ConfigurationError(f"Unsupported export format '{fmt}'. Use xlsx or csv.")

    logger.info("Exported %d row(s) for %d months as %s", len(df), selected_period, fmt)
    return data
