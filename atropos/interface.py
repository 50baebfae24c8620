"""Interfaces for running a prognoser over recorded data"""
from typing import Tuple

import numpy as np
import pandas as pd
from tqdm import tqdm

from atropos.config import ConfigMap
from atropos.prognoser import ModelBasedPrognoser
from atropos.telemetry import InMemoryTelemetry

__all__ = ['run_prognoser']


def run_prognoser(config: ConfigMap, dataset: pd.DataFrame, pbar: bool = False) \
        -> Tuple[pd.DataFrame, ModelBasedPrognoser]:
    """Replay a recorded time series through a new prognoser

    Args:
        config: Configuration used to build the prognoser
        dataset: Time series with a ``time`` column (units: s) and a column for each
            sensor named in the ``inputs`` and ``outputs`` of the configuration
        pbar: Whether to display a progress bar
    Returns:
        - Summary of each prediction: time, statistics of the time of event, and the
          mean of each predicted output at the start of the prediction
        - Prognoser after processing all rows
    """

    telemetry = InMemoryTelemetry()
    prognoser = ModelBasedPrognoser(config, telemetry)
    settings = prognoser.settings

    missing = [c for c in ['time'] + settings.inputs + settings.outputs if c not in dataset.columns]
    if len(missing) > 0:
        raise ValueError(f'Dataset is missing columns: {", ".join(missing)}')

    event = prognoser.results.events[settings.event]
    rows = []
    for _, row in tqdm(dataset.iterrows(), total=len(dataset), disable=not pbar):
        telemetry.update_many(
            dict((name, row[name]) for name in settings.inputs + settings.outputs),
            time=row['time'] * 1e3
        )
        if not prognoser.step():
            continue

        summary = {
            'time': prognoser.last_time,
            f'{settings.event}_mean': event.mean(),
            f'{settings.event}_median': event.median(),
            f'{settings.event}_p05': event.percentile(5),
            f'{settings.event}_p95': event.percentile(95),
            f'{settings.event}_reached': event.reached_fraction,
        }
        for name, trajectory in prognoser.results.trajectories.items():
            summary[name] = trajectory.mean()[0]
        rows.append(summary)

    columns = ['time'] + [f'{settings.event}_{s}' for s in ['mean', 'median', 'p05', 'p95', 'reached']] \
        + settings.predicted_outputs
    output = pd.DataFrame(rows, columns=columns)
    output['time'] = output['time'].astype(np.float64)
    return output, prognoser
