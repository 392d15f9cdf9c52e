"""
FastAPI backend for Concentrator.
Provides REST API for concentration conversion, dilution and mixture calculations.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional, Union

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from calculations import CalculationEngine, CalculationResult
from calculations.formulas import max_mixing_ratio
from calculations.mixture import CompoundRow
from calculations.units import ConcentrationUnit, VolumeUnit

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


# --- Configuration ---

# Every setting can be overridden with a CONCENTRATOR_<KEY> environment variable
DEFAULT_SETTINGS = {
    "max_mixing_ratio": "5",  # Ratio picker offers 1..max_mixing_ratio
    "cors_origins": "http://localhost:5173,http://127.0.0.1:5173",
    "log_level": "INFO",
}


def load_settings() -> dict:
    """Default settings with environment overrides applied."""
    settings = dict(DEFAULT_SETTINGS)
    for key in DEFAULT_SETTINGS:
        value = os.environ.get(f"CONCENTRATOR_{key.upper()}")
        if value:
            settings[key] = value
    return settings


def get_engine() -> CalculationEngine:
    return CalculationEngine(load_settings())


# --- Pydantic schemas ---

# Numeric fields arrive exactly as typed so that parse errors can be reported
NumericInput = Union[str, float, None]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class UnitsResponse(BaseModel):
    """Selectable units and mixing ratios."""
    concentration_units: list[str]
    volume_units: list[str]
    mixing_ratios: list[int]


class ConversionRequest(BaseModel):
    """Unit conversion form."""
    concentration: NumericInput = None
    from_unit: ConcentrationUnit = ConcentrationUnit.MG_PER_ML
    to_unit: ConcentrationUnit = ConcentrationUnit.MOL_PER_L
    mol_weight: NumericInput = None  # g/mol; required when either unit is mg/mL


class DilutionRequest(BaseModel):
    """Dilution form."""
    stock_concentration: NumericInput = None
    stock_unit: ConcentrationUnit = ConcentrationUnit.MOL_PER_L
    final_concentration: NumericInput = None
    final_unit: ConcentrationUnit = ConcentrationUnit.MOL_PER_L
    final_volume: NumericInput = None
    volume_unit: VolumeUnit = VolumeUnit.MILLILITRE
    mol_weight: NumericInput = None


class CompoundInput(BaseModel):
    """One compound row of the mixture form."""
    id: Optional[str] = None
    concentration: NumericInput = None
    unit: ConcentrationUnit = ConcentrationUnit.MOL_PER_L
    mol_weight: NumericInput = None
    ratio: Union[int, str] = 1


class MixtureRequest(BaseModel):
    """Mixture (complexing) form."""
    compounds: list[CompoundInput] = Field(default_factory=list)
    final_concentration: NumericInput = None
    final_unit: ConcentrationUnit = ConcentrationUnit.MOL_PER_L
    final_volume: NumericInput = None
    volume_unit: VolumeUnit = VolumeUnit.MILLILITRE
    final_mass: NumericInput = None


class CompoundTemplateResponse(BaseModel):
    """Blank compound row for the 'add compound' action."""
    id: str
    concentration: str
    unit: ConcentrationUnit
    mol_weight: str
    ratio: int


class CalculationResultResponse(BaseModel):
    """Schema for a single calculation result."""
    calculation_type: str
    input_summary: dict
    output_values: dict
    warnings: list[str]
    success: bool
    error: Optional[str] = None
    error_fields: list[str] = Field(default_factory=list)
    display: Optional[str] = None


class CalculationPreviewRequest(BaseModel):
    """Schema for calculation preview request."""
    data: dict
    calculation_type: str


def _to_response(result: CalculationResult) -> CalculationResultResponse:
    return CalculationResultResponse(
        calculation_type=result.calculation_type,
        input_summary=result.input_summary,
        output_values=result.output_values,
        warnings=result.warnings,
        success=result.success,
        error=result.error,
        error_fields=result.error_fields,
        display=result.display,
    )


def _form_data(request: BaseModel) -> dict:
    # Enums are passed on as their plain string values
    return request.model_dump(mode="json")


# --- App lifecycle ---

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging on startup."""
    settings = load_settings()
    logging.basicConfig(
        level=settings["log_level"].upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Concentrator backend {VERSION} started (max mixing ratio {settings['max_mixing_ratio']})")
    yield


# --- FastAPI app ---

app = FastAPI(
    title="Concentrator Backend",
    description="Backend API for lab solution concentration, dilution and mixture calculations",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in load_settings()["cors_origins"].split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Endpoints ---

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="ok", version=VERSION)


@app.get("/units", response_model=UnitsResponse)
async def get_units():
    """Units and ratios the forms may offer."""
    max_ratio = max_mixing_ratio(get_engine().settings)
    return UnitsResponse(
        concentration_units=[u.value for u in ConcentrationUnit],
        volume_units=[u.value for u in VolumeUnit],
        mixing_ratios=list(range(1, max_ratio + 1)),
    )


@app.get("/calculations/types", response_model=list[str])
async def get_calculation_types():
    """Get list of available calculation types."""
    return CalculationEngine.get_available_types()


@app.post("/convert", response_model=CalculationResultResponse)
async def convert_concentration(request: ConversionRequest):
    """Convert a concentration between units."""
    return _to_response(get_engine().calculate(_form_data(request), "conversion"))


@app.post("/dilution", response_model=CalculationResultResponse)
async def calculate_dilution(request: DilutionRequest):
    """Stock and diluent volumes for a dilution."""
    return _to_response(get_engine().calculate(_form_data(request), "dilution"))


@app.post("/mixture", response_model=CalculationResultResponse)
async def calculate_mixture(request: MixtureRequest):
    """
    Stock volume per compound plus buffer volume for a mixture.

    Rows are matched to their volumes by id; rows sent without an id get one,
    returned alongside their volume.
    """
    return _to_response(get_engine().calculate(_form_data(request), "mixture"))


@app.get("/mixture/compound-template", response_model=CompoundTemplateResponse)
async def get_compound_template():
    """A new blank compound row with a fresh id (unit mol/L, ratio 1)."""
    row = CompoundRow()
    return CompoundTemplateResponse(
        id=row.id,
        concentration=row.concentration,
        unit=row.unit,
        mol_weight=row.molecular_weight,
        ratio=row.ratio,
    )


@app.post("/calculate/preview", response_model=CalculationResultResponse)
async def preview_calculation(request: CalculationPreviewRequest):
    """
    Run any registered calculation on raw form data.

    Useful for testing formulas with custom data.
    """
    engine = get_engine()

    try:
        result = engine.calculate(request.data, request.calculation_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _to_response(result)
