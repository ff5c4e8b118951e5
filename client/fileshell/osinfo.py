"""Host platform metadata for the ``os`` command."""

import getpass
import json
import os
import platform

from . import InvalidInputError


CPUINFO_PATH = "/proc/cpuinfo"


def _read_cpuinfo(path=CPUINFO_PATH):
    """Parse model name and MHz for each logical CPU from /proc/cpuinfo.

    Returns a list of (model, mhz) tuples; mhz is None when the kernel
    does not report it.  Returns [] if the file is unreadable.
    """
    try:
        with open(path, "r") as f:
            text = f.read()
    except OSError:
        return []

    cpus = []
    for block in text.split("\n\n"):
        fields = {}
        for line in block.splitlines():
            if ":" not in line:
                continue
            key, value = line.split(":", 1)
            fields[key.strip()] = value.strip()
        if "processor" not in fields:
            continue
        model = (fields.get("model name") or fields.get("Processor")
                 or fields.get("cpu model") or "")
        mhz = None
        try:
            mhz = float(fields["cpu MHz"])
        except (KeyError, ValueError):
            pass
        cpus.append((model, mhz))
    return cpus


def cpu_info():
    """Return a (model, mhz) tuple per logical CPU."""
    cpus = _read_cpuinfo()
    if cpus:
        return cpus
    count = os.cpu_count() or 1
    model = platform.processor() or platform.machine() or "unknown"
    return [(model, None)] * count


def format_cpus(cpus):
    """Render the ``os --cpus`` report."""
    lines = ["Overall amount of CPUs: {}".format(len(cpus))]
    for index, (model, mhz) in enumerate(cpus, 1):
        if mhz is None:
            speed = "unknown"
        else:
            speed = "{:.2f} GHz".format(mhz / 1000.0)
        lines.append("CPU {}: {} ({})".format(index, model, speed))
    return lines


def eol():
    """JSON-quoted line separator, e.g. "\\n"."""
    return json.dumps(os.linesep)


def homedir():
    return os.path.expanduser("~")


def username():
    return getpass.getuser()


def architecture():
    return platform.machine()


FLAGS = {
    "--EOL": eol,
    "--cpus": lambda: format_cpus(cpu_info()),
    "--homedir": homedir,
    "--username": username,
    "--architecture": architecture,
}


def report(flag):
    """Return the output for one ``os`` flag.

    Raises InvalidInputError for an unknown flag.
    """
    func = FLAGS.get(flag)
    if func is None:
        raise InvalidInputError("unknown os flag: {}".format(flag))
    return func()
