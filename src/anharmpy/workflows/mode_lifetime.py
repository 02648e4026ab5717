"""Config-driven phonon lifetime runs (linewidths, lifetimes, RTA conductivity)."""

from __future__ import annotations

import argparse
import hashlib
import json
import re
import socket
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np

from anharmpy import logger
from anharmpy.core import (
    AnharmonicCoupling,
    KPointGrid,
    ParallelConfig,
    ParallelReducer,
    SelfEnergyEngine,
    phonon_states_from_ifc,
    rta_conductivity,
)
from anharmpy.io import read_model
from anharmpy.modeling import EngineConfig, cm1_to_qe_omega, qe_omega_to_cm1, qe_rate_to_lifetime_ps
from anharmpy.models import (
    DiatomicParams,
    DimerizedParams,
    LatticeModel,
    SimpleCubicParams,
    diatomic_model,
    dimerized_model,
    simple_cubic_model,
)


log = logger.get_logger(__name__)

MODEL_SOURCES: tuple[str, ...] = ("toy_simple_cubic", "toy_diatomic", "toy_dimerized", "file")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _sanitize_token(value: str) -> str:
    token = re.sub(r"[^A-Za-z0-9._-]+", "_", value.strip())
    return token if token else "unnamed"


def _sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as fh:
        while True:
            chunk = fh.read(1024 * 1024)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()


def _resolve_path(base_dir: Path, path_like: str | Path) -> Path:
    p = Path(path_like)
    return p if p.is_absolute() else (base_dir / p)


def _to_builtin(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, np.ndarray):
        return _to_builtin(value.tolist())
    if isinstance(value, (np.floating, np.integer)):
        return value.item()
    if isinstance(value, complex):
        return [value.real, value.imag]
    if isinstance(value, float) and not np.isfinite(value):
        return None
    if isinstance(value, dict):
        return {str(k): _to_builtin(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_builtin(v) for v in value]
    return value


def _load_json_config(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8-sig") as fh:
        cfg = json.load(fh)
    if not isinstance(cfg, dict):
        raise ValueError("Input config must be a JSON object.")
    return cfg


def _save_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(_to_builtin(payload), fh, indent=2, sort_keys=True)
        fh.write("\n")


def _temperature_grid(cfg: dict[str, Any]) -> np.ndarray:
    tmin = float(cfg.get("min", 300.0))
    step = float(cfg.get("step", 100.0))
    tmax = float(cfg.get("max", tmin + step))
    if tmin < 0.0:
        raise ValueError("temperature.min must be non-negative.")
    if step <= 0.0:
        raise ValueError("temperature.step must be positive.")
    # max is exclusive: T_i = min + i*step for i < int((max - min)/step)
    nt = int((tmax - tmin) / step)
    if nt < 1:
        raise ValueError("temperature range must hold at least one step (max > min).")
    return tmin + step * np.arange(nt)


def _build_model(cfg: dict[str, Any], cfg_dir: Path) -> tuple[LatticeModel, dict[str, Any]]:
    source = str(cfg.get("source", "toy_simple_cubic")).lower()
    if source not in MODEL_SOURCES:
        raise ValueError(f"model.source must be one of: {', '.join(MODEL_SOURCES)}.")
    spring_keys = ("k_par", "k_perp", "k3", "k4")
    info: dict[str, Any] = {"source": source}
    if source == "toy_simple_cubic":
        keys = spring_keys + ("mass_amu", "lattice_constant")
        params = SimpleCubicParams(**{k: float(cfg[k]) for k in keys if k in cfg})
        info["params"] = {k: getattr(params, k) for k in keys}
        return simple_cubic_model(params), info
    if source == "toy_diatomic":
        keys = spring_keys + ("mass_a_amu", "mass_b_amu", "lattice_constant")
        params = DiatomicParams(**{k: float(cfg[k]) for k in keys if k in cfg})
        info["params"] = {k: getattr(params, k) for k in keys}
        return diatomic_model(params), info
    if source == "toy_dimerized":
        keys = spring_keys + ("mass_a_amu", "mass_b_amu", "lattice_constant", "stiffness_ratio", "cubic_ratio")
        params = DimerizedParams(**{k: float(cfg[k]) for k in keys if k in cfg})
        info["params"] = {k: getattr(params, k) for k in keys}
        return dimerized_model(params), info
    if "path" not in cfg:
        raise ValueError("model.path is required when model.source is 'file'.")
    path = _resolve_path(cfg_dir, cfg["path"]).resolve()
    reader = str(cfg.get("reader", "json"))
    info.update({"path": str(path), "reader": reader, "sha256": _sha256_file(path)})
    return read_model(path, reader), info


def _resolve_modes(cfg_modes: list[dict[str, Any]] | None, engine: SelfEnergyEngine) -> list[tuple[int, int]]:
    states = engine.states
    if not cfg_modes:
        return [(k, s) for k in range(states.nk) for s in range(states.n_branches)]
    modes = []
    for item in cfg_modes:
        k = states.nearest_grid_index(np.asarray(item["kpoint"], dtype=float))
        s = int(item["branch"])
        if not 0 <= s < states.n_branches:
            raise ValueError(f"branch {s} is out of range for {states.n_branches} branches.")
        modes.append((k, s))
    return modes


def _save_lifetime_data(path: Path, engine: SelfEnergyEngine, results: list, temperatures: np.ndarray) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    xk = engine.states.grid.xk
    with path.open("w", encoding="utf-8") as fh:
        fh.write("# scattering rate 2*Gamma [cm^-1] and lifetime 1/(2*Gamma) [ps] per mode\n")
        for res in results:
            k, s = res.mode
            rate = np.asarray(qe_omega_to_cm1(res.scattering_rate), dtype=float)
            tau = np.asarray(qe_rate_to_lifetime_ps(res.scattering_rate), dtype=float)
            fh.write(f"# xk = {xk[k][0]:.8f} {xk[k][1]:.8f} {xk[k][2]:.8f}\n")
            fh.write(f"# branch = {s}\n")
            fh.write(f"# frequency = {float(qe_omega_to_cm1(res.frequency)):.8f} cm^-1\n")
            fh.write("# T[K]\trate[cm^-1]\tlifetime[ps]\n")
            for t, r, lt in zip(temperatures, rate, tau):
                lt_str = "inf" if not np.isfinite(lt) else f"{float(lt):.10e}"
                fh.write(f"{float(t):.4f}\t{float(r):.10e}\t{lt_str}\n")
            fh.write("\n")


def _save_conductivity_data(path: Path, temperatures: np.ndarray, kappa: np.ndarray) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    labels = "\t".join(f"k_{a}{b}" for a in "xyz" for b in "xyz")
    with path.open("w", encoding="utf-8") as fh:
        fh.write(f"# T[K]\t{labels}  [W/(m K)]\n")
        for t, kap in zip(temperatures, kappa):
            vals = "\t".join(f"{float(v):.10e}" for v in kap.ravel())
            fh.write(f"{float(t):.4f}\t{vals}\n")


def _default_template() -> dict[str, Any]:
    return {
        "run": {
            "name": "mode_lifetime_run",
            "output_dir": "outputs/lifetime_runs",
            "write_data": True,
            "write_report": True,
            "log_level": "INFO",
        },
        "model": {
            "source": "toy_diatomic",
            "path": None,
            "reader": "json",
            "k_par": 0.1,
            "k_perp": 0.02,
            "k3": -0.2,
            "k4": 0.4,
        },
        "kmesh": {"nk": [4, 4, 4]},
        "selfenergy": {
            "method": "gaussian",
            "smearing_cm1": 2.0,
            "four_phonon": False,
            "classical": False,
            "frequency_tol": 1e-6,
            "degeneracy_tol": 1e-10,
        },
        "temperature": {"min": 100.0, "max": 500.0, "step": 100.0},
        "modes": [{"kpoint": [0.25, 0.0, 0.0], "branch": 5}],
        "parallel": {"backend": "serial", "n_workers": 1, "n_threads": 1},
        "conductivity": {"enabled": False},
    }


def write_input_template(path: str | Path) -> Path:
    out = Path(path)
    _save_json(out, _default_template())
    return out


def run_mode_lifetime(config_path: str | Path) -> dict[str, Any]:
    cfg_path = Path(config_path)
    cfg_dir = cfg_path.parent if cfg_path.parent != Path("") else Path(".")
    cfg = _load_json_config(cfg_path)
    run_cfg = dict(cfg.get("run", {}))
    run_name = str(run_cfg.get("name", f"lifetime_{cfg_path.stem}"))
    run_name_safe = _sanitize_token(run_name)
    output_dir = _resolve_path(cfg_dir, run_cfg.get("output_dir", "outputs/lifetime_runs"))
    write_data = bool(run_cfg.get("write_data", True))
    write_report = bool(run_cfg.get("write_report", True))
    logger.setup(run_cfg.get("log_level", "INFO"))

    se_cfg = dict(cfg.get("selfenergy", {}))
    method = str(se_cfg.get("method", "gaussian")).lower()
    smearing_cm1 = float(se_cfg.get("smearing_cm1", 2.0))
    engine_cfg = EngineConfig(
        method=method,
        smearing=float(cm1_to_qe_omega(smearing_cm1)) if method != "tetrahedron" else 1.0,
        four_phonon=bool(se_cfg.get("four_phonon", False)),
        classical_occupation=bool(se_cfg.get("classical", False)),
        frequency_tol=float(se_cfg.get("frequency_tol", 1e-6)),
        degeneracy_tol=float(se_cfg.get("degeneracy_tol", 1e-10)),
    )
    par_cfg = dict(cfg.get("parallel", {}))
    parallel = ParallelConfig(
        backend=str(par_cfg.get("backend", "serial")).lower(),
        n_workers=int(par_cfg.get("n_workers", 1)),
        n_threads=int(par_cfg.get("n_threads", 1)),
    )
    temperatures = _temperature_grid(dict(cfg.get("temperature", {})))
    nk = tuple(int(n) for n in dict(cfg.get("kmesh", {})).get("nk", [4, 4, 4]))
    conductivity_enabled = bool(dict(cfg.get("conductivity", {})).get("enabled", False))
    if conductivity_enabled and cfg.get("modes"):
        raise ValueError("conductivity needs every mode; remove 'modes' from the config.")

    t0 = time.perf_counter()
    started = _utc_now_iso()
    cfg_sha256 = _sha256_file(cfg_path.resolve())

    model, model_info = _build_model(dict(cfg.get("model", {})), cfg_dir)
    grid = KPointGrid(nk)
    states = phonon_states_from_ifc(model.ifc, grid, with_velocities=conductivity_enabled)
    coupling = AnharmonicCoupling(model.force_constants, states)
    engine = SelfEnergyEngine(states, coupling, engine_cfg, reducer=ParallelReducer(parallel))
    modes = _resolve_modes(cfg.get("modes"), engine)
    log.info("run %s: %d modes x %d temperatures", run_name, len(modes), temperatures.size)

    results = [engine.selfenergy(k, s, temperatures) for k, s in modes]

    kappa = None
    if conductivity_enabled:
        gamma = np.zeros(states.frequencies.shape + (temperatures.size,))
        for res in results:
            gamma[res.mode] = res.linewidth
        lattice = model.ifc.lattice_vectors
        if lattice is None:
            raise ValueError("conductivity needs lattice_vectors in the model.")
        kappa = rta_conductivity(states, gamma, temperatures, lattice, engine_cfg.frequency_tol)

    runtime = time.perf_counter() - t0
    finished = _utc_now_iso()
    outputs: dict[str, Any] = {}
    if write_data and engine.reducer.is_root:
        data_path = output_dir / f"{run_name_safe}_lifetime.tsv"
        _save_lifetime_data(data_path, engine, results, temperatures)
        outputs["lifetime_data"] = str(data_path)
        if kappa is not None:
            kl_path = output_dir / f"{run_name_safe}.kl"
            _save_conductivity_data(kl_path, temperatures, kappa)
            outputs["conductivity_data"] = str(kl_path)

    report: dict[str, Any] = {
        "run": {
            "name": run_name,
            "config_path": str(cfg_path.resolve()),
            "started_utc": started,
            "finished_utc": finished,
            "runtime_seconds": float(runtime),
        },
        "model": {
            **model_info,
            "name": model.name,
            "n_atoms": int(len(model.ifc.masses)),
            "n_cubic": len(model.force_constants.cubic),
            "n_quartic": len(model.force_constants.quartic),
        },
        "kmesh": {"nk": list(nk), "n_kpoints": grid.nk},
        "selfenergy": {
            "method": engine_cfg.method,
            "smearing_cm1": smearing_cm1 if method != "tetrahedron" else None,
            "four_phonon": engine_cfg.four_phonon,
            "classical": engine_cfg.classical_occupation,
            "diagrams": list(engine.labels),
        },
        "parallel": {"backend": parallel.backend, "n_workers": parallel.n_workers, "n_threads": parallel.n_threads},
        "temperatures": temperatures,
        "modes": [
            {
                "kpoint": grid.xk[res.mode[0]],
                "branch": res.mode[1],
                "frequency_cm1": float(qe_omega_to_cm1(res.frequency)),
                "rate_cm1": np.asarray(qe_omega_to_cm1(res.scattering_rate), dtype=float),
                "shift_cm1": np.asarray(qe_omega_to_cm1(res.shift), dtype=float) if res.real_part_available else None,
            }
            for res in results
        ],
        "provenance": {
            "config_sha256": cfg_sha256,
            "workspace": str(Path.cwd().resolve()),
            "hostname": socket.gethostname(),
        },
        "outputs": outputs,
    }
    if kappa is not None:
        report["conductivity"] = {"kappa_W_mK": kappa}

    if write_report and engine.reducer.is_root:
        report_path = output_dir / run_cfg.get("report_filename", f"{run_name_safe}_report.json")
        _save_json(report_path, report)
        report["outputs"]["report"] = str(report_path)
    return report


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--input", type=Path, default=None, help="Path to JSON run configuration.")
    parser.add_argument("--write-template", type=Path, default=None, help="Write template config and exit.")
    args = parser.parse_args()

    if args.write_template is not None:
        out = write_input_template(args.write_template)
        print(f"Wrote template: {out}")
        return
    if args.input is None:
        raise ValueError("Provide --input <config.json> or --write-template <path>.")

    report = run_mode_lifetime(args.input)
    print(f"Run complete: {report['run']['name']}")
    print(f"modes={len(report['modes'])} temperatures={len(report['temperatures'])}")
    print(f"runtime_seconds={report['run']['runtime_seconds']:.3f}")
    print(f"outputs={report['outputs']}")


if __name__ == "__main__":
    main()
