# Auto-Pull - rerolls the gacha until the screen shows enough five stars
# Because clicking "draw" four hundred times is not a hobby

import sys
import traceback
from pathlib import Path
from typing import Optional

import keyboard

# Local imports
from autopull import (
    AppConfig, CancellationToken, MatchEngine, PullStats, ActionDispatcher,
    TemplateStore, ThresholdSet, load_config, calibrate,
)
from autopull.errors import AutoPullError, SettingsError, TemplateNotFound
from autopull.puller import PullState, PullStateMachine, Session, StopReason, required_templates
from autopull.surface import DesktopSurface
from autopull.ui import Dashboard, make_logger


class AutoPuller:
    # Wires everything together and owns the process-level resources

    def __init__(self, settings_path: str = "settings.txt"):
        self.settings_path = settings_path
        self.cfg: Optional[AppConfig] = None
        self.token: Optional[CancellationToken] = None
        self.stats: Optional[PullStats] = None
        self.dash: Optional[Dashboard] = None
        self.log = lambda m, l: None  # Dummy logger until init
        self.surface: Optional[DesktopSurface] = None
        self.store: Optional[TemplateStore] = None
        self.engine: Optional[MatchEngine] = None
        self.machine: Optional[PullStateMachine] = None

    def bootstrap(self):
        # 1. Settings
        try:
            self.cfg = load_config(self.settings_path)
        except (SettingsError, OSError) as e:
            print(f"CRITICAL: Settings failed to load: {e}")
            sys.exit(1)

        for d in (self.cfg.paths.template_dir, self.cfg.paths.screenshot_dir):
            Path(d).mkdir(parents=True, exist_ok=True)

        # 2. Stats + UI
        self.stats = PullStats(self.cfg.paths.stats_file)
        self.stats.load()
        self.dash = Dashboard(self.stats, cancel_key=self.cfg.cancel_key)
        self.log = make_logger(self.dash, debug=self.cfg.debug)
        self.dash.start()
        self.log(f"Loaded stats: {self.stats.pulls} lifetime pulls", "INFO")

        # 3. Cancel key, bound before anything slow happens
        self.token = CancellationToken(poll_interval=self.cfg.loop.poll_interval)
        keyboard.add_hotkey(self.cfg.cancel_key, self._cancel)

        # 4. Window + scale
        self.surface = DesktopSurface(monitor_index=self.cfg.display.monitor)
        display = self.cfg.display
        handle, bounds, scale = calibrate(
            self.surface, display.window_title, (display.reference_width, display.reference_height)
        )
        self.log(f"Window '{handle.title}' {bounds.width}x{bounds.height}, scale {scale:.3f}", "SUCCESS")
        thresholds = ThresholdSet.from_config(self.cfg.thresholds, scale, log_fn=self.log)

        # 5. Templates
        self.store = TemplateStore(self.cfg.paths.template_dir, scale=scale, log_fn=self.log)
        names = required_templates(self.cfg)
        missing = self.store.missing(names)
        if missing:
            raise TemplateNotFound(f"missing templates in {self.store.directory}: {', '.join(missing)}")
        self.store.preload(names)

        self.engine = MatchEngine(
            self.store,
            grayscale=self.cfg.matching.grayscale,
            workers=self.cfg.matching.workers,
            debug_path=Path("logs/debug") if self.cfg.debug else None,
            log_fn=self.log
        )

        # 6. The loop itself
        session = Session(token=self.token, thresholds=thresholds)
        dispatcher = ActionDispatcher(self.surface, self.token, self.cfg.loop.settle_delay, log_fn=self.log)
        self.machine = PullStateMachine(
            session, self.surface, self.engine, dispatcher, self.stats, self.cfg,
            log_fn=self.log, on_state=self._on_state
        )
        self.log(f"READY. Press {self.cfg.cancel_key.upper()} to stop.", "WARN")

    def _cancel(self):
        if self.token:
            self.token.cancel()

    def _on_state(self, state: PullState, detail: str):
        if state is PullState.STOPPED:
            status = Dashboard.STATUS_STOPPED if self.machine.stop_reason else Dashboard.STATUS_ERROR
            self.dash.set_status(status, detail)
        else:
            self.dash.set_status(Dashboard.STATUS_RUNNING, detail)
        self.dash.set_step(state.value.capitalize())
        self.dash.update()

    def run(self) -> int:
        crash = None
        exit_code = 0
        try:
            self.bootstrap()
            reason = self.machine.run()
            if reason is StopReason.TARGET_REACHED:
                self.log("Done. Go look at your new units.", "SUCCESS")
        except KeyboardInterrupt:
            pass
        except AutoPullError as e:
            self.log(f"CRITICAL ERROR: {e}", "ERROR")
            crash = f"CRITICAL ERROR: {e}"
            exit_code = 1
        except Exception as e:
            self.log(f"CRITICAL ERROR: {e}", "ERROR")
            crash = traceback.format_exc()
            exit_code = 1
        finally:
            self.shutdown()
        if crash:
            print(crash, file=sys.stderr)
        return exit_code

    def shutdown(self):
        try:
            keyboard.unhook_all()
        except (ImportError, OSError):
            pass
        if self.token:
            self.token.close()
        if self.engine:
            self.engine.close()
        if self.surface:
            self.surface.close()
        if self.dash:
            if self.dash.status == Dashboard.STATUS_RUNNING:
                self.dash.set_status(Dashboard.STATUS_ERROR)
            self.dash.update()
            self.dash.stop()
        print("\nExiting Auto-Pull...")


def main() -> int:
    return AutoPuller().run()


if __name__ == "__main__":
    sys.exit(main())
