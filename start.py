"""Runs the practice API with uvicorn, using the FLASHDRILL_* settings."""
import os
import sys
import subprocess
import webbrowser
import time

from flashdrill.config import get_settings


def build_command(settings) -> list:
    return [
        sys.executable, "-m", "uvicorn", "flashdrill.main:app",
        "--host", settings.host,
        "--port", str(settings.port),
        "--log-level", settings.log_level.lower(),
    ]


def docs_url(settings) -> str:
    return f"http://{settings.host}:{settings.port}/docs"


def main():
    settings = get_settings()
    os.makedirs(settings.data_dir, exist_ok=True)
    cmd = build_command(settings)

    print(f"Practice data in {os.path.abspath(settings.data_dir)}")
    print(f"Running: {' '.join(cmd)}")
    process = subprocess.Popen(cmd)
    try:
        time.sleep(2)
        if process.poll() is None:
            webbrowser.open(docs_url(settings))
        process.wait()
    except KeyboardInterrupt:
        process.terminate()


if __name__ == "__main__":
    main()
