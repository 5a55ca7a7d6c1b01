from double_analyzer.analytics.engine import analyze
from double_analyzer.analytics.stats import window_stats
from double_analyzer.config import settings
from double_analyzer.db.store import OutcomeStore


def get_history(store: OutcomeStore, limit: int | None = None):
    """Latest rounds, their stats and the suggestion derived from them."""
    rows = store.latest(limit or settings.window)
    colors = [r.color for r in rows]
    return {
        "history": [r.to_dict() for r in rows],
        "stats": window_stats(colors),
        "prediction": analyze(rows).to_dict(),
    }


def get_database_status(store: OutcomeStore):
    return store.status()


def purge_outcomes(store: OutcomeStore):
    return {"deleted": store.purge()}


def start_collector(supervisor):
    supervisor.start()
    return supervisor.status()


def stop_collector(supervisor):
    supervisor.stop()
    return supervisor.status()


def collect_now(supervisor):
    inserted = supervisor.collect_now()
    return {"inserted": inserted, **supervisor.status()}
