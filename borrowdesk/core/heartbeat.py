"""
Heartbeat scheduler - runs the reminder, overdue digest and archive jobs on
fixed intervals. A task never overlaps with itself: if a run is still in
progress (for example one started from the API), the next call is skipped.
"""

import time
import threading
from typing import Callable, Dict

from .config import is_heartbeat_enabled, validate_heartbeat_config
from ..util.logging import logger


tasks: Dict[str, Dict] = {}  # task_name -> {func, interval, last_run, lock}
running = False
shutdown_event = None


def register_task(name: str, interval_sec: int, func: Callable):
    """
    Register a task to be executed periodically.

    Args:
        name: Unique task identifier
        interval_sec: How often to run this task in seconds
        func: Function to call
    """
    if not callable(func):
        raise ValueError(f"Task function must be callable: {func}")

    if interval_sec < 1:
        raise ValueError(f"Interval must be >= 1 second: {interval_sec}")

    # Validate heartbeat config at registration time
    issues = validate_heartbeat_config()
    if issues:
        raise ValueError(f"Heartbeat configuration invalid: {issues}")

    tasks[name] = {
        "func": func,
        "interval": interval_sec,
        "last_run": None,
        "lock": threading.Lock(),
    }

    print(f"✓ Registered heartbeat task '{name}' (every {interval_sec}s)")


def unregister_task(name: str):
    """Remove a task from the registry."""
    if name in tasks:
        del tasks[name]
        print(f"✓ Unregistered heartbeat task '{name}'")


def list_tasks():
    """Return list of registered task names."""
    return list(tasks.keys())


def start():
    """
    Start the heartbeat loop.

    Cooperative scheduling: each cycle checks task intervals and runs the
    tasks that are due. Uses time.monotonic() for reliable timing.
    """
    global running, shutdown_event

    if not is_heartbeat_enabled():
        print("Heartbeat disabled (HEARTBEAT_ENABLED=false). Skipping start.")
        return

    if running:
        raise RuntimeError("Heartbeat already running")

    issues = validate_heartbeat_config()
    if issues:
        raise ValueError(f"Heartbeat configuration invalid: {issues}")

    running = True
    shutdown_event = threading.Event()

    print("🚀 Starting heartbeat loop")
    print(f"📋 Registered tasks: {list(tasks.keys())}")

    try:
        while running and not shutdown_event.is_set():
            for name, task_info in list(tasks.items()):
                if should_run_task(name, task_info):
                    try:
                        run_task(name, task_info)
                    except Exception as e:
                        # Error isolation - log error but continue loop
                        print(f"❌ Heartbeat task '{name}' failed: {e}")

            shutdown_event.wait(0.5)

    except KeyboardInterrupt:
        print("\n🛑 Heartbeat interrupted by user")
    finally:
        running = False
        print("🏁 Heartbeat loop stopped")


def stop():
    """Stop the heartbeat loop gracefully."""
    global running

    if not running:
        print("Heartbeat not running")
        return

    print("🛑 Stopping heartbeat loop...")
    running = False

    if shutdown_event:
        shutdown_event.set()

    print("✓ Heartbeat stopped")


def should_run_task(name: str, task_info: Dict) -> bool:
    """Check if a task should run this cycle."""
    if task_info["last_run"] is None:
        return True  # Run immediately if never run

    elapsed = time.monotonic() - task_info["last_run"]
    return elapsed >= task_info["interval"]


def run_task(name: str, task_info: Dict) -> bool:
    """
    Execute a task and record timing.

    Returns False without running when the task is already in progress.
    """
    lock = task_info.setdefault("lock", threading.Lock())
    if not lock.acquire(blocking=False):
        logger.log_operation(f"heartbeat.{name}", "skipped", {"reason": "previous run still in progress"})
        return False

    start_time = time.monotonic()
    try:
        task_info["func"]()
    except Exception as e:
        end_time = time.monotonic()
        task_info["last_run"] = end_time
        logger.log_heartbeat_task(name, start_time, end_time, "failed", {"error": str(e)})
        raise RuntimeError(f"Task '{name}' failed after {end_time - start_time:.2f}s: {e}")
    finally:
        lock.release()

    end_time = time.monotonic()
    task_info["last_run"] = end_time
    logger.log_heartbeat_task(name, start_time, end_time)
    return True


def run_now(name: str) -> bool:
    """Run a registered task immediately, honouring the no-overlap lock."""
    if name not in tasks:
        raise KeyError(f"Unknown heartbeat task: {name}")
    return run_task(name, tasks[name])


def reset_task(name: str):
    """Reset a task's last_run time to force immediate execution."""
    if name in tasks:
        tasks[name]["last_run"] = None
        print(f"✓ Reset heartbeat task '{name}' (will run immediately)")


def get_status():
    """Return current heartbeat status for monitoring."""
    if not is_heartbeat_enabled():
        return {"status": "disabled", "reason": "HEARTBEAT_ENABLED=false"}

    return {
        "status": "running" if running else "stopped",
        "tasks": {
            name: {
                "interval_sec": info["interval"],
                "last_run": info["last_run"],
                "next_run": info["last_run"] + info["interval"] if info["last_run"] else None,
                "in_progress": info["lock"].locked() if "lock" in info else False,
            }
            for name, info in tasks.items()
        },
    }
