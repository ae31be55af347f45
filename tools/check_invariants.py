#!/usr/bin/env python3
"""Vault parameter invariant checks against config/vault_params.json."""

import json
import sys
from pathlib import Path

# Add src to path for parvault imports
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from parvault.config import parse_utc
from parvault.numeric import BPS_SCALE, MAX_PERFORMANCE_FEE_BPS
from parvault.numeric import check_bps as bps_in_range

PARAMS_PATH = ROOT / "config" / "vault_params.json"


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def check_bps(params: dict, key: str, ceiling: int, errors: list[str]) -> None:
    value = params.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        errors.append(f"{key} must be an integer, got {value!r}")
    elif not bps_in_range(value, ceiling):
        errors.append(f"{key} must be in [0, {ceiling}], got {value}")


def check(params_path: Path = PARAMS_PATH) -> int:
    params = load_json(params_path)
    errors: list[str] = []

    # --- Identities ---
    for key in ("owner", "treasury"):
        if not params.get(key):
            errors.append(f"{key} must be set")
    if params.get("owner") and params.get("owner") == params.get("treasury"):
        errors.append("treasury should be distinct from owner")

    # --- Rates ---
    check_bps(params, "performance_fee_bps", MAX_PERFORMANCE_FEE_BPS, errors)
    check_bps(params, "redemption_fee_bps", BPS_SCALE, errors)
    check_bps(params, "max_slippage_bps", BPS_SCALE, errors)

    # --- Vesting window ---
    try:
        start = parse_utc(params["vesting_start_utc"])
        end = parse_utc(params["vesting_end_utc"])
    except (KeyError, ValueError) as e:
        errors.append(f"vesting window unreadable: {e}")
    else:
        if end < start:
            errors.append("vesting_end_utc must not precede vesting_start_utc")

    # --- Units ---
    decimals = params.get("decimals", 18)
    if not isinstance(decimals, int) or decimals < 0:
        errors.append(f"decimals must be a non-negative integer, got {decimals!r}")

    if errors:
        print("Invariant check FAILED:")
        for err in errors:
            print(f"  - {err}")
        return 1

    print("Invariant check passed.")
    return 0


if __name__ == "__main__":
    sys.exit(check())
