from fastapi import APIRouter, Depends, HTTPException, Header, Query, Request
from double_analyzer.api.schemas import (
    CollectOut,
    CollectorStatusOut,
    DatabaseStatusOut,
    HistoryOut,
    PurgeOut,
)
from double_analyzer.services import (
    collect_now,
    get_database_status,
    get_history,
    purge_outcomes,
    start_collector,
    stop_collector,
)
from double_analyzer.config import settings
from double_analyzer.errors import CollectionInProgress, CollectorNotRunning, CollectorStartError

router = APIRouter()


def _auth(api_key_header: str | None = Header(default=None, alias="X-API-Key")):
    if settings.api_key and api_key_header != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")


def get_store(request: Request):
    return request.app.state.store


def get_supervisor(request: Request):
    return request.app.state.supervisor


@router.get('/history', response_model=HistoryOut)
def history(limit: int | None = Query(default=None, ge=1, le=500), store=Depends(get_store)):
    return get_history(store, limit)


@router.get('/status', response_model=DatabaseStatusOut)
def status(store=Depends(get_store)):
    return get_database_status(store)


@router.post('/collector/start', response_model=CollectorStatusOut, dependencies=[Depends(_auth)])
def collector_start(supervisor=Depends(get_supervisor)):
    try:
        return start_collector(supervisor)
    except CollectorStartError:
        raise HTTPException(503, detail="collector could not reach the source")


@router.post('/collector/stop', response_model=CollectorStatusOut, dependencies=[Depends(_auth)])
def collector_stop(supervisor=Depends(get_supervisor)):
    return stop_collector(supervisor)


@router.post('/collector/collect', response_model=CollectOut, dependencies=[Depends(_auth)])
def collector_collect(supervisor=Depends(get_supervisor)):
    try:
        return collect_now(supervisor)
    except CollectionInProgress:
        raise HTTPException(409, detail="a collection cycle is already running")
    except CollectorNotRunning:
        raise HTTPException(409, detail="collector is not running")


@router.get('/collector/status', response_model=CollectorStatusOut, dependencies=[Depends(_auth)])
def collector_status(supervisor=Depends(get_supervisor)):
    return supervisor.status()


@router.post('/admin/purge', response_model=PurgeOut, dependencies=[Depends(_auth)])
def purge(store=Depends(get_store)):
    return purge_outcomes(store)
