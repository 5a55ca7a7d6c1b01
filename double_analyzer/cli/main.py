import os
import signal
import threading

import requests
import typer

from double_analyzer.config import settings

app = typer.Typer()
BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")
API_KEY = os.getenv("API_KEY")


def _headers():
    h = {}
    if API_KEY:
        h["X-API-Key"] = API_KEY
    return h


@app.command()
def history(limit: int = typer.Option(None)):
    r = requests.get(f"{BASE}/history", params={"limit": limit} if limit else {}, headers=_headers(), timeout=30)
    typer.echo(r.json())


@app.command()
def status():
    r = requests.get(f"{BASE}/collector/status", headers=_headers(), timeout=30)
    typer.echo(r.json())


@app.command()
def start():
    r = requests.post(f"{BASE}/collector/start", headers=_headers(), timeout=180)
    typer.echo(r.json())


@app.command()
def stop():
    r = requests.post(f"{BASE}/collector/stop", headers=_headers(), timeout=180)
    typer.echo(r.json())


@app.command()
def collect():
    r = requests.post(f"{BASE}/collector/collect", headers=_headers(), timeout=180)
    typer.echo(r.json())


@app.command()
def purge(yes: bool = typer.Option(False, "--yes", help="Skip confirmation")):
    if not yes:
        typer.confirm("Delete every stored outcome?", abort=True)
    r = requests.post(f"{BASE}/admin/purge", headers=_headers(), timeout=30)
    typer.echo(r.json())


@app.command("run-collector")
def run_collector():
    """Run the collector in this process until SIGINT/SIGTERM."""
    from double_analyzer.collector.supervisor import CollectorSupervisor
    from double_analyzer.db.base import engine, init_db
    from double_analyzer.db.store import OutcomeStore
    from double_analyzer.errors import CollectorStartError
    from double_analyzer.logging_config import setup_logging

    setup_logging(settings.log_level, settings.log_dir)
    init_db()
    supervisor = CollectorSupervisor(OutcomeStore(engine))
    done = threading.Event()

    def _shutdown(signum, frame):
        typer.echo(f"Received signal {signum}, stopping collector...")
        done.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    try:
        supervisor.start()
    except CollectorStartError as e:
        typer.echo(f"Collector failed to start: {e}", err=True)
        raise typer.Exit(code=1)
    try:
        while not done.wait(60):
            pass
    finally:
        supervisor.stop()


@app.command()
def serve(host: str = "127.0.0.1", port: int = 8000):
    import uvicorn
    uvicorn.run("double_analyzer.api.main:app", host=host, port=port)


if __name__ == "__main__":
    app()
