# -*- coding: utf-8 -*-

import os
import logging
from pathlib import Path

import yaml


#=======================================================================
# YAML Utilities
#=======================================================================

def read_yaml(path):
    """
    Read a YAML file and return its parsed content.

    Args:
        path (str): Path to the input file.

    Returns:
        Parsed YAML content (usually a dict), or None for an empty file.
    """
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


def write_yaml(data, path):
    """
    Write data to a YAML file.

    Args:
        data (dict): Data to write.
        path (str): Destination file path.
    """
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


#=======================================================================
# Parallel Processing Utilities
#=======================================================================

def resolve_n_jobs(n_jobs: int, n_tasks: int | None = None, verbose: bool = False) -> int:
    """
    Resolve the number of worker threads to use.

    Args:
        n_jobs (int): Desired number of workers.
            -1 means one worker per task (or CPU count when n_tasks is None).
             >=1 means use that many workers, capped at n_tasks.
        n_tasks (int): Number of tasks that will be submitted, if known.
        verbose (bool): If True, log the number of workers being used.

    Returns:
        int: Number of workers to use.
    """
    if n_jobs == -1:
        num_workers = n_tasks or os.cpu_count() or 1
    elif n_jobs >= 1:
        num_workers = min(n_jobs, n_tasks) if n_tasks else n_jobs
    else:
        raise ValueError(f"Invalid n_jobs value: {n_jobs}. Must be >= 1 or -1.")
    num_workers = max(1, num_workers)
    if verbose:
        logging.info(f"Using {num_workers} workers.")
    return num_workers


#=======================================================================
# Path Utilities
#=======================================================================

def mask_path(path, base_dir=None):
    """
    Masks or simplifies a path for logging.

    Args:
        path (str): The full path to mask.
        base_dir (str, optional): The base directory to make the path relative to.

    Returns:
        str: The masked or simplified path.
    """
    path = Path(path)

    # Use base_dir if provided, otherwise fallback to PROJECT_DIR from environment
    if base_dir is None:
        base_dir = os.getenv('PROJECT_DIR')

    if base_dir:
        try:
            return str(path.relative_to(Path(base_dir)))
        except ValueError:
            pass  # Not under base_dir

    # Replace home directory with "~"
    try:
        return f"~/{path.relative_to(Path.home())}"
    except ValueError:
        return str(path)


def assert_required_path(path, description="Path"):
    """
    Ensures that a required file or directory exists.

    Raises:
        FileNotFoundError: If the path does not exist.
    """
    if not os.path.exists(path):
        logging.error(f"{description} not found at: {mask_path(path)}")
        raise FileNotFoundError(f"{description} not found: {path}")


def ensure_output_path(path, description="Output folder"):
    """Make sure the parent directory of an output file exists."""
    parent = Path(path).parent
    if not parent.exists():
        logging.info(f"{description} does not exist. Creating it at: {mask_path(parent)}")
        parent.mkdir(parents=True, exist_ok=True)
