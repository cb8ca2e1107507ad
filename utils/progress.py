from typing import Dict, Optional
import logging
from tqdm import tqdm
import psutil
import time

class ProgressMonitor:
    def __init__(self, total: int, desc: str = "Pipeline",
                 logger: Optional[logging.Logger] = None,
                 disable: bool = False):
        """Initialize progress monitor with total stages and description"""
        self.logger = logger or logging.getLogger('progress')
        self.pbar = tqdm(total=total, desc=desc, disable=disable)
        self.total = total
        self.current = 0
        self.start_time = time.time()
        self.last_checkpoint = self.start_time
        self.description = desc
        self.checkpoints: Dict[str, Dict[str, float]] = {}

    def checkpoint(self, name: str):
        """Record duration and resident memory of a finished stage"""
        now = time.time()
        self.checkpoints[name] = {
            'duration': now - self.last_checkpoint,
            'memory': psutil.Process().memory_info().rss / 1024 / 1024  # MB
        }
        self.last_checkpoint = now
        self.update(1, status=f"{name} done in {self.checkpoints[name]['duration']:.2f}s")

    def update(self, n: int = 1, status: str = ""):
        """Update progress by n stages with optional status message"""
        self.current += n
        self.pbar.update(n)

        if status:
            self.pbar.set_postfix_str(status)
            self.logger.info(f"{self.description} [{self.current}/{self.total}]: {status}")

    def report(self) -> str:
        """Generate checkpoint report"""
        total_time = time.time() - self.start_time
        report = ["Performance Report:", "-----------------"]

        for name, stats in self.checkpoints.items():
            report.append(f"{name}:")
            report.append(f"  Duration: {stats['duration']:.2f} seconds")
            report.append(f"  Memory: {stats['memory']:.2f} MB")

        report.append("-----------------")
        report.append(f"Total Time: {total_time:.2f} seconds")
        return "\n".join(report)

    def close(self):
        """Close progress bar and log final statistics"""
        self.pbar.close()
        self.logger.info(self.report())
