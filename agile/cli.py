"""
CLI module for the AGILE search.

Handles command-line arguments, run configuration loading, validation,
logging setup and dispatch to the evolution driver.
"""

from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import Dict, Any, Optional, Sequence
import argparse
import logging
import sys

import numpy as np

from .config import (
    ConfigurationError,
    EvolutionConfig,
    MutationConfig,
    SimulationConfig,
    load_config,
)
from .orchestration import EvolutionResult, run_evolution

KNOWN_SECTIONS = ('simulation', 'evolution', 'mutation', 'logging', 'random_seed', 'workers')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')


def load_run_config(config_path: str) -> Dict[str, Any]:
    """
    Load run configuration from YAML file.

    Args:
        config_path: Path to run configuration YAML file

    Returns:
        Dictionary containing run configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If config is invalid
    """
    return load_config(config_path)


def validate_run_config(config: Dict[str, Any]) -> None:
    """
    Validate run configuration structure.

    Every section is optional; missing sections take the defaults.

    Args:
        config: Run configuration dictionary

    Raises:
        ConfigurationError: If configuration is invalid
    """
    unknown = set(config) - set(KNOWN_SECTIONS)
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration sections: {', '.join(sorted(unknown))}"
        )

    # Building the values runs their range checks
    SimulationConfig.from_dict(config.get('simulation'))
    EvolutionConfig.from_dict(config.get('evolution'))
    MutationConfig.from_dict(config.get('mutation'))

    seed = config.get('random_seed')
    if seed is not None and (not isinstance(seed, int) or seed < 0):
        raise ConfigurationError(
            f"'random_seed' must be a non-negative integer, got: {seed}"
        )

    workers = config.get('workers', 1)
    if not isinstance(workers, int) or workers < 1:
        raise ConfigurationError(
            f"'workers' must be a positive integer, got: {workers}"
        )

    log_config = config.get('logging') or {}
    if not isinstance(log_config, dict):
        raise ConfigurationError("'logging' must be a dictionary")
    level = str(log_config.get('level', 'INFO')).upper()
    if level not in LOG_LEVELS:
        raise ConfigurationError(
            f"Invalid logging level: '{level}'. Must be one of {', '.join(LOG_LEVELS)}"
        )


def setup_logging(log_config: Optional[Dict[str, Any]]) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        log_config: Optional dict with 'level' and 'file'

    Returns:
        The "agile" logger
    """
    log_config = log_config or {}
    logger = logging.getLogger("agile")
    logger.setLevel(str(log_config.get('level', 'INFO')).upper())

    logfile = log_config.get('file')
    if logfile:
        logfile = Path(logfile).resolve()
        for h in logger.handlers:
            if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == str(logfile):
                return logger

        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile, encoding="utf-8")
        fmt = logging.Formatter("%(asctime)s %(levelname)s: %(message)s",
                                datefmt="%Y-%m-%d %H:%M:%S")
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


def run(config: Dict[str, Any]) -> EvolutionResult:
    """
    Execute a validated run configuration.

    Args:
        config: Run configuration dictionary

    Returns:
        EvolutionResult of the run
    """
    simulation = SimulationConfig.from_dict(config.get('simulation'))
    evolution = EvolutionConfig.from_dict(config.get('evolution'))
    mutation = MutationConfig.from_dict(config.get('mutation'))

    # Setup RNG
    seed = config.get('random_seed')
    if seed is None:
        seed = int(np.random.randint(0, 2**31))
    print(f"Random seed: {seed}")
    rng = np.random.default_rng(seed)

    workers = config.get('workers', 1)
    if workers > 1:
        print(f"Evaluating fitness on {workers} worker processes")
        with ProcessPoolExecutor(max_workers=workers) as executor:
            return run_evolution(simulation, evolution, mutation, rng, executor)

    return run_evolution(simulation, evolution, mutation, rng)


def apply_overrides(
    config: Dict[str, Any],
    seed: Optional[int] = None,
    workers: Optional[int] = None,
    generations: Optional[int] = None
) -> Dict[str, Any]:
    """
    Return a copy of a run configuration with command-line values applied.

    Values left as None keep what the file says.
    """
    config = dict(config)
    if seed is not None:
        config['random_seed'] = seed
    if workers is not None:
        config['workers'] = workers
    if generations is not None:
        evolution = dict(config.get('evolution') or {})
        evolution['generation_limit'] = generations
        config['evolution'] = evolution
    return config


def run_from_config(
    config_path: str,
    overrides: Optional[Dict[str, Any]] = None
) -> EvolutionResult:
    """
    Load run configuration and execute it.

    Args:
        config_path: Path to run configuration YAML file
        overrides: Optional keyword arguments for apply_overrides

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If config is invalid
    """
    print(f"Loading configuration from: {config_path}")
    config = apply_overrides(load_run_config(config_path), **(overrides or {}))

    print(f"Validating configuration...")
    validate_run_config(config)

    logger = setup_logging(config.get('logging'))
    logger.info("run started from %s", config_path)

    result = run(config)

    logger.info("run finished: best fitness %d (%s)", result.best_fitness, result.best_design)
    print("\nRun completed successfully!")
    return result


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point with command-line argument parsing"""
    parser = argparse.ArgumentParser(
        prog="agile",
        description="AGILE - evolutionary search for layered optical stacks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  agile                                   # Full search from config.yaml
  agile examples/quick_run.yaml           # Quick run on a coarse ray grid
  agile --seed 7 --generations 50         # Reproducible short run
  agile config.yaml --workers 8           # Evaluate fitness on 8 processes
  python3 -m agile --config config.yaml   # Without the installed script
        """
    )

    parser.add_argument(
        'config_file',
        nargs='?',
        help='Run configuration file path (default: config.yaml)'
    )

    parser.add_argument(
        '--config', '-c',
        dest='config_option',
        metavar='PATH',
        help='Run configuration file path, as an alternative to the positional argument'
    )

    parser.add_argument(
        '--seed', '-s',
        type=int,
        help='Random seed, overriding random_seed in the file'
    )

    parser.add_argument(
        '--workers', '-w',
        type=int,
        metavar='N',
        help='Worker processes for fitness evaluation, overriding workers in the file'
    )

    parser.add_argument(
        '--generations', '-g',
        type=int,
        metavar='N',
        help='Generation limit, overriding evolution.generation_limit in the file'
    )

    args = parser.parse_args(argv)

    if args.config_file and args.config_option:
        parser.error("give the configuration file either positionally or with --config")
    config_path = args.config_file or args.config_option or 'config.yaml'

    overrides = {
        'seed': args.seed,
        'workers': args.workers,
        'generations': args.generations,
    }

    try:
        run_from_config(config_path, overrides)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)
