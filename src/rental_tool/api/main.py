import logging
from typing import Dict, List, Literal, Optional
import sys
from pathlib import Path
from urllib.parse import quote

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field

# Add src to path for internal imports
src_path = Path(__file__).parent.parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from rental_tool import __version__
from rental_tool.engine import RentalEngine, RawProduct, RateConfig, ConfigurationError
from rental_tool.config.settings import get_settings
from rental_tool.data.export import export_bytes, export_filename
from rental_tool.data.ingest import sample_template_bytes

logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

app = FastAPI(
    title="Rental Pricing API",
    description="Rental-plan pricing for one-time product prices",
    version=__version__
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

engine = RentalEngine()


class ProductIn(BaseModel):
    product_name: str
    model_name: str = ""
    # Validated per product by the engine so bad rows are reported, not rejected wholesale
    price: Optional[float] = None


class RateConfigIn(BaseModel):
    supply_rate_percent: float
    periods: List[int]
    discount_rate_percent: Dict[int, float]
    fee_rate_percent: Dict[int, float]
    selected_period: Optional[int] = None

    def to_config(self) -> RateConfig:
        return RateConfig(
            supply_rate_percent=self.supply_rate_percent,
            periods=tuple(self.periods),
            discount_rate_percent=dict(self.discount_rate_percent),
            fee_rate_percent=dict(self.fee_rate_percent),
            selected_period=self.selected_period,
        )


class CalcRequest(BaseModel):
    products: List[ProductIn]
    config: Optional[RateConfigIn] = None


class ExportRequest(CalcRequest):
    format: Literal["xlsx", "csv"] = "xlsx"


class SkippedOut(BaseModel):
    index: int
    product_name: str
    model_name: str
    reason: str


class CalcResponse(BaseModel):
    products: List[dict]
    skipped: List[SkippedOut] = Field(default_factory=list)
    config: dict


def _calculate(req: CalcRequest):
    config = req.config.to_config() if req.config else get_settings().default_rate_config()
    products = [
        RawProduct(product_name=p.product_name, model_name=p.model_name, price=p.price)
        for p in req.products
    ]
    try:
        return engine.compute_all(products, config)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/")
async def root():
    return {"status": "online", "message": "Rental Pricing API Active"}


@app.get("/config/defaults")
async def get_default_config():
    return get_settings().default_rate_config().to_dict()


@app.post("/calculate", response_model=CalcResponse)
async def calculate(req: CalcRequest):
    result = _calculate(req)
    return CalcResponse(
        products=[p.to_dict() for p in result.products],
        skipped=[
            SkippedOut(
                index=s.index,
                product_name=s.product.product_name,
                model_name=s.product.model_name,
                reason=s.reason,
            )
            for s in result.skipped
        ],
        config=result.config.to_dict(),
    )


@app.post("/export")
async def export(req: ExportRequest):
    result = _calculate(req)
    period = result.config.effective_period
    data = export_bytes(result.products, period, fmt=req.format)
    filename = export_filename(period, fmt=req.format)
    media_type = XLSX_MIME if req.format == "xlsx" else "text/csv"
    logger.info("Export requested: %s", filename)
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


@app.get("/template")
async def template():
    return Response(
        content=sample_template_bytes(),
        media_type=XLSX_MIME,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote('렌탈계산기_샘플양식.xlsx')}"},
    )
