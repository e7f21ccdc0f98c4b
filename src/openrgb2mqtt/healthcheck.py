#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import os
import sys
import time


def main() -> int:
    path = os.getenv("READY_FILE", "/tmp/openrgb2mqtt.ready")
    max_age = int(os.getenv("HEALTH_MAX_AGE", "90"))  # seconds

    try:
        st = os.stat(path)
    except FileNotFoundError:
        return 1
    return 0 if time.time() - st.st_mtime < max_age else 1


if __name__ == "__main__":
    sys.exit(main())
