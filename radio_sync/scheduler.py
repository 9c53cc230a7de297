"""
APScheduler wrapper for Radio Sync

This module provides a simple interface to APScheduler for background polling:
- BackgroundScheduler setup
- Poll job management (start/stop/resume)
- Graceful shutdown support

Key Principle: Simple wrapper around APScheduler - don't over-engineer.
The poll job runs at a fixed interval in seconds (floor: 10 seconds).
One job instance at a time; missed runs are coalesced, never queued.
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from radio_sync.poller import clamp_interval

logger = logging.getLogger(__name__)


class RadioScheduler:
    """Wrapper for APScheduler to manage the background poll job

    Attributes:
        scheduler: BackgroundScheduler instance
        poll_interval: Interval in seconds between polls
    """

    JOB_ID = 'poll_job'

    def __init__(self, poll_func, poll_interval_seconds=15, paused=True):
        """Initialize scheduler with polling function

        Args:
            poll_func: Function to call for each poll (should take no args)
            poll_interval_seconds: Seconds between polls (clamped to the floor)
            paused: Leave the job paused until start() is called (default: True)
        """
        self.scheduler = BackgroundScheduler()
        self.poll_interval = clamp_interval(poll_interval_seconds)
        self.poll_func = poll_func
        self.job_id = self.JOB_ID

        self.scheduler.add_job(
            self._run_poll,
            IntervalTrigger(seconds=self.poll_interval),
            id=self.job_id,
            name='Station Status Poll Job',
            max_instances=1,
            coalesce=True
        )

        self.scheduler.start(paused=False)
        if paused:
            self.scheduler.pause_job(self.job_id)
        logger.info(f"Scheduler initialized (interval: {self.poll_interval} seconds, paused: {paused})")

    def _run_poll(self):
        """Run the poll function

        This wraps the poll function for error handling.
        """
        try:
            if self.poll_func:
                self.poll_func()
        except Exception as e:
            logger.error(f"Error during scheduled poll: {e}", exc_info=True)

    def start(self):
        """Start/resume the poll job

        Returns:
            True if started, False if already running
        """
        job = self.scheduler.get_job(self.job_id)
        if job and job.next_run_time is not None:
            logger.info("Poll job already running")
            return False

        self.scheduler.resume_job(self.job_id)
        logger.info("Poll job started")
        return True

    def stop(self):
        """Stop/pause the poll job

        Returns:
            True if stopped, False if already stopped
        """
        job = self.scheduler.get_job(self.job_id)
        if not job:
            logger.warning("Poll job not found")
            return False

        if job.next_run_time is None:
            logger.info("Poll job already stopped")
            return False

        self.scheduler.pause_job(self.job_id)
        logger.info("Poll job stopped")
        return True

    def is_running(self):
        """Check if poll job is running (not paused)

        Returns:
            True if job is running, False if paused or missing
        """
        job = self.scheduler.get_job(self.job_id)
        if not job:
            return False
        return job.next_run_time is not None

    def next_run_time(self):
        """Next scheduled poll as ISO string, None when paused"""
        job = self.scheduler.get_job(self.job_id)
        if job and job.next_run_time:
            return job.next_run_time.isoformat()
        return None

    def shutdown(self, wait=True):
        """Shutdown scheduler (graceful shutdown)

        Args:
            wait: Wait for a running poll to complete (default: True)
        """
        try:
            logger.info("Shutting down scheduler...")
            self.scheduler.shutdown(wait=wait)
            logger.info("Scheduler shut down")
        except Exception as e:
            logger.error(f"Error shutting down scheduler: {e}")

    def modify_interval(self, seconds):
        """Modify the poll interval

        Args:
            seconds: New interval in seconds (clamped to the floor)

        Returns:
            int: The interval actually applied
        """
        seconds = clamp_interval(seconds)
        was_running = self.is_running()

        self.scheduler.reschedule_job(
            self.job_id,
            trigger=IntervalTrigger(seconds=seconds)
        )
        # reschedule_job resumes a paused job
        if not was_running:
            self.scheduler.pause_job(self.job_id)

        self.poll_interval = seconds
        logger.info(f"Poll interval changed to {seconds} seconds")
        return seconds
