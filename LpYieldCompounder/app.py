#!/usr/bin/env python3
"""
LP Yield Compounder - Flask API Server

Provides REST API endpoints for:
- Strategy status, valuation and tend trigger
- Vault deposits and withdrawals
- Keeper operations (harvest/report, tend)
- Management parameters and shutdown
- Paper simulations
"""
import time
import threading
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from config import Config
from infra.paper_venues import PaperEnvironment, build_paper_environment
from infra.redis_client import is_redis_available
from simulator import Simulator
from strategies.errors import StrategyError
from strategies.lp_compounder import LpCompounder
from strategies.params import StrategyParams
from vault.vault_manager import VaultManager
from utils.logging_utils import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)

app = Flask(__name__)
app.secret_key = Config.SECRET_KEY
CORS(app)

MAX_SIM_STEPS = 2000

paper_env: Optional[PaperEnvironment] = None
strategy: Optional[LpCompounder] = None
vault_manager: Optional[VaultManager] = None

# Strategy operations mutate shared venue state; run them one at a time.
strategy_lock = threading.Lock()


def initialize_strategy(params: Optional[StrategyParams] = None) -> VaultManager:
    global paper_env, strategy, vault_manager

    logger.info(f"Initializing strategy in {Config.MODE} mode...")

    if Config.is_simulation():
        paper_env = build_paper_environment(account=Config.STRATEGY_ADDRESS)
        venues = paper_env.venues
        funds_in = paper_env.fund
    else:
        from infra.evm_venues import build_evm_environment
        paper_env = None
        venues = build_evm_environment()
        funds_in = None

    strategy = LpCompounder(venues, params=params)
    vault_manager = VaultManager(strategy, funds_in=funds_in)

    logger.info(f"Strategy {strategy.name()} ready")
    return vault_manager


def get_vault() -> VaultManager:
    if vault_manager is None:
        return initialize_strategy()
    return vault_manager


def _error_response(e: Exception, operation: str):
    if isinstance(e, StrategyError):
        logger.warning(f"{operation} rejected: {e}")
        return jsonify({"success": False, "error": str(e), "kind": type(e).__name__}), 400
    if isinstance(e, (ValueError, TypeError)):
        logger.warning(f"{operation} bad request: {e}")
        return jsonify({"success": False, "error": str(e), "kind": "BadRequest"}), 400
    logger.error(f"{operation} error: {e}")
    return jsonify({"success": False, "error": str(e)}), 500


def _read_amount(data: Dict[str, Any]) -> int:
    if "amount" not in data:
        raise ValueError("amount is required")
    raw = data["amount"]
    if isinstance(raw, bool) or not isinstance(raw, (int, str)):
        raise ValueError(f"amount must be an integer in base units, got {raw!r}")
    amount = int(raw)
    if amount <= 0:
        raise ValueError(f"amount must be positive, got {amount}")
    return amount


@app.after_request
def add_header(response):
    response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'
    response.headers['Pragma'] = 'no-cache'
    response.headers['Expires'] = '0'
    return response


@app.route("/health")
def health():
    return jsonify({"status": "healthy", "timestamp": time.time()})


@app.route("/api/status")
def api_status():
    try:
        with strategy_lock:
            status = get_vault().get_status()
        return jsonify({
            "success": True,
            "mode": Config.MODE,
            "redis_available": is_redis_available(),
            "uptime": time.time() - app.start_time if hasattr(app, 'start_time') else 0,
            **status
        })
    except Exception as e:
        return _error_response(e, "Status")


@app.route("/api/total-assets")
def api_total_assets():
    try:
        with strategy_lock:
            vault = get_vault()
            total_assets = vault.strategy.total_assets()
            position = vault.strategy.oracle.position()
        return jsonify({
            "success": True,
            "total_assets": total_assets,
            "position": position.to_dict(),
            "timestamp": time.time()
        })
    except Exception as e:
        return _error_response(e, "Total assets")


@app.route("/api/tend-trigger")
def api_tend_trigger():
    try:
        with strategy_lock:
            should_tend = get_vault().tend_trigger()
        return jsonify({"success": True, "should_tend": should_tend, "timestamp": time.time()})
    except Exception as e:
        return _error_response(e, "Tend trigger")


@app.route("/api/config", methods=["GET", "POST"])
def api_config():
    try:
        if request.method == "GET":
            with strategy_lock:
                compounder = get_vault().strategy
                params = compounder.params.to_dict()
            return jsonify({
                "success": True,
                "mode": Config.MODE,
                "strategy": compounder.name(),
                "params": params,
                "available_profiles": Config.get_all_profiles()
            })

        data = request.get_json(silent=True) or {}
        caller = data.get("caller")

        with strategy_lock:
            compounder = get_vault().strategy
            compounder.params.require_management(caller)

            if "profile" in data:
                profile = Config.get_strategy_profile(str(data["profile"]))
                compounder.set_tolerance(profile["slippage_bps"], caller)
                compounder.set_min_reward_to_harvest(profile["min_reward_to_harvest"], caller)
                compounder.set_min_idle_to_deploy(profile["min_idle_to_deploy"], caller)
                logger.info(f"Applied strategy profile: {data['profile']}")

            if "slippage_bps" in data:
                compounder.set_tolerance(int(data["slippage_bps"]), caller)
            if "min_reward_to_harvest" in data:
                compounder.set_min_reward_to_harvest(int(data["min_reward_to_harvest"]), caller)
            if "min_idle_to_deploy" in data:
                compounder.set_min_idle_to_deploy(int(data["min_idle_to_deploy"]), caller)

            params = compounder.params.to_dict()

        return jsonify({
            "success": True,
            "params": params,
            "message": "Configuration updated successfully"
        })
    except Exception as e:
        return _error_response(e, "Config")


@app.route("/api/deposit", methods=["POST"])
def api_deposit():
    try:
        data = request.get_json(silent=True) or {}
        amount = _read_amount(data)
        with strategy_lock:
            result = get_vault().deposit(amount)
        return jsonify({"success": True, **result})
    except Exception as e:
        return _error_response(e, "Deposit")


@app.route("/api/withdraw", methods=["POST"])
def api_withdraw():
    try:
        data = request.get_json(silent=True) or {}
        amount = _read_amount(data)
        with strategy_lock:
            result = get_vault().withdraw(amount)
        return jsonify({"success": True, **result})
    except Exception as e:
        return _error_response(e, "Withdraw")


@app.route("/api/harvest", methods=["POST"])
def api_harvest():
    try:
        data = request.get_json(silent=True) or {}
        with strategy_lock:
            report = get_vault().report(data.get("caller"))
        return jsonify({"success": True, "report": report})
    except Exception as e:
        return _error_response(e, "Harvest")


@app.route("/api/tend", methods=["POST"])
def api_tend():
    try:
        data = request.get_json(silent=True) or {}
        with strategy_lock:
            result = get_vault().tend(data.get("caller"))
        return jsonify({"success": True, "result": result})
    except Exception as e:
        return _error_response(e, "Tend")


@app.route("/api/shutdown", methods=["POST"])
def api_shutdown():
    try:
        data = request.get_json(silent=True) or {}
        caller = data.get("caller")
        with strategy_lock:
            compounder = get_vault().strategy
            compounder.shutdown(caller)
            freed = None
            if "emergency_withdraw" in data:
                freed = compounder.emergency_withdraw(int(data["emergency_withdraw"]), caller)
        return jsonify({"success": True, "is_shutdown": True, "freed": freed})
    except Exception as e:
        return _error_response(e, "Shutdown")


@app.route("/api/reports")
def api_reports():
    try:
        limit = int(request.args.get("limit", 50))
        with strategy_lock:
            reports = get_vault().get_reports(limit)
        return jsonify({
            "success": True,
            "reports": reports,
            "count": len(reports),
            "timestamp": time.time()
        })
    except Exception as e:
        return _error_response(e, "Reports")


@app.route("/api/simulate", methods=["POST"])
def api_simulate():
    try:
        data = request.get_json(silent=True) or {}
        steps = min(int(data.get("steps", Config.SIM_STEPS)), MAX_SIM_STEPS)

        simulator = Simulator(
            initial_deposit=int(data.get("deposit", Config.SIM_INITIAL_DEPOSIT)),
            profile=str(data.get("profile", "balanced")),
            seed=int(data.get("seed", Config.SIM_SEED)),
            report_every=int(data.get("report_every", Config.SIM_REPORT_EVERY)),
        )
        results = simulator.run_simulation(num_steps=steps)

        return jsonify({
            "success": True,
            "results": results
        })
    except Exception as e:
        return _error_response(e, "Simulation")


def start_app():
    app.start_time = time.time()
    initialize_strategy()


if __name__ == "__main__":
    start_app()
    app.run(host="0.0.0.0", port=5000, debug=False, threaded=True)
