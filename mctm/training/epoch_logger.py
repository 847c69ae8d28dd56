"""
Epoch Logger for multi-class machine training.

Provides structured, per-epoch logging with:
1. Per-epoch statistics (duration, throughput, dropout fractions, accuracy)
2. Running mean/std and moving averages per metric
3. Console and optional JSONL file output
4. Optional wandb forwarding

Usage:
    logger = EpochLogger(log_dir="./logs")

    # In the training loop:
    logger.log_epoch(stats, total_epochs)

    # After training:
    logger.close()
"""

import json
import math
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class EpochStats:
    """What one training epoch did."""
    epoch: int
    num_examples: int
    duration_s: float
    clause_drop_fraction: float = 0.0
    literal_drop_fraction: float = 0.0
    train_accuracy: Optional[float] = None

    @property
    def examples_per_s(self) -> float:
        return self.num_examples / self.duration_s if self.duration_s > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        entry = asdict(self)
        entry['examples_per_s'] = self.examples_per_s
        return entry


@dataclass
class MetricStats:
    """Running statistics for a single metric."""
    name: str
    current: float = 0.0
    running_mean: float = 0.0
    running_std: float = 0.0
    min_value: float = float('inf')
    max_value: float = float('-inf')
    num_samples: int = 0

    ema_alpha: float = 0.1
    ema_value: float = 0.0

    # Welford accumulator
    _m2: float = 0.0

    def update(self, value: float):
        """Update statistics with a new value."""
        if value is None or math.isnan(value):
            return
        self.num_samples += 1
        self.current = value
        self.min_value = min(self.min_value, value)
        self.max_value = max(self.max_value, value)

        if self.num_samples == 1:
            self.running_mean = value
            self.ema_value = value
            return

        delta = value - self.running_mean
        self.running_mean += delta / self.num_samples
        self._m2 += delta * (value - self.running_mean)
        self.running_std = math.sqrt(self._m2 / (self.num_samples - 1))
        self.ema_value = self.ema_alpha * value + (1 - self.ema_alpha) * self.ema_value

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary for logging."""
        return {
            f"{self.name}/current": self.current,
            f"{self.name}/ema": self.ema_value,
            f"{self.name}/mean": self.running_mean,
            f"{self.name}/std": self.running_std,
            f"{self.name}/min": self.min_value if self.min_value != float('inf') else 0.0,
            f"{self.name}/max": self.max_value if self.max_value != float('-inf') else 0.0,
        }


class EpochLogger:
    """
    Structured epoch logger with running statistics.

    Features:
    - History of EpochStats
    - Running statistics per tracked metric
    - Console + optional JSONL file + optional wandb logging
    - Text summary written on close()
    """

    TRACKED_METRICS = [
        'duration_s', 'examples_per_s',
        'clause_drop_fraction', 'literal_drop_fraction',
        'train_accuracy',
    ]

    def __init__(
        self,
        log_dir: Optional[str] = None,
        enable_file_logging: bool = True,
        enable_console: bool = True,
        wandb_run: Optional[Any] = None,
    ):
        """
        Args:
            log_dir: Directory for log files (None = no file logging)
            enable_file_logging: Write one JSON line per epoch
            enable_console: Print one line per epoch
            wandb_run: Optional wandb run for cloud logging
        """
        self.log_dir = Path(log_dir) if log_dir else None
        self.enable_file_logging = enable_file_logging and self.log_dir is not None
        self.enable_console = enable_console
        self.wandb_run = wandb_run

        self.history: List[EpochStats] = []
        self.stats: Dict[str, MetricStats] = {
            name: MetricStats(name=name) for name in self.TRACKED_METRICS
        }

        if self.enable_file_logging:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.epoch_log_path = self.log_dir / f"epoch_log_{timestamp}.jsonl"
            self.summary_log_path = self.log_dir / f"epoch_summary_{timestamp}.txt"
        else:
            self.epoch_log_path = None
            self.summary_log_path = None

    def log_epoch(self, stats: EpochStats, total_epochs: Optional[int] = None):
        self.history.append(stats)
        entry = stats.to_dict()
        for name in self.TRACKED_METRICS:
            self.stats[name].update(entry.get(name))

        if self.epoch_log_path:
            entry['timestamp'] = datetime.now().isoformat()
            with open(self.epoch_log_path, 'a') as f:
                f.write(json.dumps(entry) + '\n')

        if self.enable_console:
            self._print_epoch(stats, total_epochs)

        if self.wandb_run is not None:
            self._log_to_wandb(stats)

    def _print_epoch(self, stats: EpochStats, total_epochs: Optional[int]):
        of_total = f"/{total_epochs}" if total_epochs else ""
        line = (
            f"[Epoch {stats.epoch + 1}{of_total}] "
            f"{stats.num_examples} examples in {stats.duration_s:.2f}s "
            f"({stats.examples_per_s:.0f}/s) "
            f"drop(clause={stats.clause_drop_fraction:.3f}, literal={stats.literal_drop_fraction:.3f})"
        )
        if stats.train_accuracy is not None:
            line += f" acc={stats.train_accuracy:.4f}"
        print(line)

    def _log_to_wandb(self, stats: EpochStats):
        log_dict = {f'train/{k}': v for k, v in stats.to_dict().items() if v is not None}
        self.wandb_run.log(log_dict, step=stats.epoch)

    def summary(self) -> Dict[str, float]:
        result: Dict[str, float] = {'epochs': len(self.history)}
        for metric in self.stats.values():
            if metric.num_samples:
                result.update(metric.to_dict())
        return result

    def close(self):
        """Write the text summary (when file logging is on)."""
        if not self.summary_log_path:
            return
        with open(self.summary_log_path, 'w') as f:
            f.write(f"Epochs: {len(self.history)}\n")
            for key, value in self.summary().items():
                f.write(f"{key}: {value}\n")
