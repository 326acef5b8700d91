import sys
import os
import time
import argparse
import logging

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.append(project_root)

from locuta.core.exceptions import AudioInitError
from locuta.services.analyzer import AnalyzerController
from locuta.services.audio_sources import MicrophoneSource
from locuta.services.telemetry import NullTelemetry

logging.basicConfig(level=logging.INFO)


def print_metrics(metrics):
    print(
        f"\rvol={metrics.current_volume:3d} avg={metrics.average_volume:3d} "
        f"speaking={metrics.speaking_ratio:.2f} pauses={metrics.pause_count} "
        f"pitch={metrics.average_pitch}Hz confidence={metrics.confidence_score} "
        f"pace={metrics.pace_score} delivery={metrics.delivery_score}",
        end="",
        flush=True,
    )


def main():
    parser = argparse.ArgumentParser(description="Analyze live microphone delivery")
    parser.add_argument("--seconds", type=float, default=15.0)
    parser.add_argument("--device", type=int, default=None)
    args = parser.parse_args()

    analyzer = AnalyzerController(telemetry=NullTelemetry(), on_metrics=print_metrics)
    source = MicrophoneSource(device=args.device)

    try:
        analyzer.start_analyzing(source)
    except AudioInitError as e:
        print(f"Failed to open microphone: {e}")
        return

    print(f"Speak now ({args.seconds:.0f}s)...")
    interval = 1.0 / analyzer.config.tick_rate_hz
    deadline = time.monotonic() + args.seconds
    try:
        while time.monotonic() < deadline:
            analyzer.tick()
            time.sleep(interval)
    except KeyboardInterrupt:
        pass
    finally:
        final = analyzer.stop_analyzing()

    print("\n\nFinal metrics:")
    for name, value in final.model_dump().items():
        print(f"  {name}: {value}")


if __name__ == "__main__":
    main()
