"""
Provides reactivex support
"""
import multiprocessing
from datetime import timedelta
from typing import Any, Callable

import reactivex
from reactivex import Observable
from reactivex.scheduler import ThreadPoolScheduler
from reactivex.scheduler.scheduler import Scheduler

default_scheduler: Scheduler = ThreadPoolScheduler(multiprocessing.cpu_count())

# Produces an Observable that emits once per period.
# Periodic work (countdown ticks, animation frames) is driven through a TickSource so that it can be
# replaced by a manually driven Subject in tests.
TickSource = Callable[[timedelta], Observable[Any]]


def interval_ticks(period: timedelta) -> Observable[int]:
    """
    Default TickSource: emits on the default scheduler every `period`.
    """
    return reactivex.interval(period, scheduler=default_scheduler)
