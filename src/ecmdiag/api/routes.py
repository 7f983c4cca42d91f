"""API route handlers.

Handlers are plain functions: FastAPI runs them in its threadpool and the
session's transport serializes the requests they make.
"""

from fastapi import APIRouter, Depends, HTTPException

from ecmdiag.api.dependencies import get_session
from ecmdiag.core.models import (
    ErrorsResponse,
    ErrorType,
    PageResponse,
    RealtimeResponse,
    StateResponse,
    VariableResponse,
    VersionResponse,
)
from ecmdiag.ecm.session import EcmSession
from ecmdiag.ecm.variables import Variable
from ecmdiag.protocol.constants import TestFunction

router = APIRouter(prefix="/api")


def _require_connected(session: EcmSession) -> None:
    if not session.is_connected:
        raise HTTPException(status_code=503, detail="ECM not connected")


def _variable_response(var: Variable) -> VariableResponse:
    return VariableResponse(
        name=var.name,
        value=var.raw_value,
        formatted=var.formatted_value,
        unit=var.unit,
        low=var.low,
        high=var.high,
    )


@router.get("/version", response_model=VersionResponse)
def get_version(session: EcmSession = Depends(get_session)):
    """Read the module version and identify it."""
    _require_connected(session)
    version = session.get_version()
    identity = session.identity
    return VersionResponse(
        version=version,
        module_type=identity.type if identity else None,
        identified=identity is not None,
    )


@router.get("/state", response_model=StateResponse)
def get_state(session: EcmSession = Depends(get_session)):
    """Get the busy/idle state."""
    _require_connected(session)
    state = session.get_current_state()
    return StateResponse(state=state, busy=state != 0)


@router.post("/tests/{function}")
def run_test(function: str, session: EcmSession = Depends(get_session)):
    """Run an actuator test (function name, e.g. fuel_pump)."""
    _require_connected(session)
    try:
        test = TestFunction[function.upper()]
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown test function: {function}") from None
    session.run_test(test)
    return {"success": True, "function": test.name.lower()}


@router.post("/eeprom/pages/{number}", response_model=PageResponse)
def read_eeprom_page(number: int, session: EcmSession = Depends(get_session)):
    """Read one EEPROM page from the module."""
    _require_connected(session)
    page = session.read_eeprom_page(number)
    return PageResponse(
        number=page.number,
        start=page.start,
        length=page.length,
        data=session.eeprom.page_data(page).hex(),
    )


@router.get("/eeprom/values/{name}", response_model=VariableResponse)
def get_eeprom_value(name: str, session: EcmSession = Depends(get_session)):
    """Decode an EEPROM variable from the pages read so far."""
    _require_connected(session)
    var = session.get_eeprom_value(name)
    if var is None:
        raise HTTPException(status_code=404, detail=f"Variable not found: {name}")
    return _variable_response(var)


@router.post("/realtime", response_model=RealtimeResponse)
def read_realtime(session: EcmSession = Depends(get_session)):
    """Take a realtime snapshot and decode all scalar variables."""
    _require_connected(session)
    names = session.scalar_variable_names()
    session.read_rt_data()
    values = {}
    for name in names:
        var = session.get_realtime_value(name)
        if var is not None:
            values[name] = _variable_response(var)
    return RealtimeResponse(values=values)


@router.get("/realtime/values/{name}", response_model=VariableResponse)
def get_realtime_value(name: str, session: EcmSession = Depends(get_session)):
    """Decode a realtime variable from the latest snapshot."""
    _require_connected(session)
    var = session.get_realtime_value(name)
    if var is None:
        raise HTTPException(status_code=404, detail=f"Variable not found: {name}")
    return _variable_response(var)


@router.get("/errors", response_model=ErrorsResponse)
def get_errors(type: ErrorType = ErrorType.CURRENT, session: EcmSession = Depends(get_session)):
    """List set diagnostic codes."""
    _require_connected(session)
    return ErrorsResponse(errors=session.get_errors(type))
