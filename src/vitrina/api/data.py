"""JSON endpoints: the current user's data and process diagnostics."""

import os
import platform
import resource
import sys
from pathlib import Path

from fastapi import APIRouter, Depends

from vitrina.api.pages import VISIT_COUNTER_KEY
from vitrina.auth.dependencies import get_current_user, get_session
from vitrina.auth.sessions import ServerSession
from vitrina.db.models import User

router = APIRouter()


@router.get("/get-data")
async def get_data(
    user: User = Depends(get_current_user),
    session: ServerSession = Depends(get_session),
):
    """User record without secrets, plus the session's visit counter."""
    return {
        "user": user.public_dict(),
        "contador": session.get(VISIT_COUNTER_KEY, 0),
    }


def resident_memory_bytes() -> int:
    """Current RSS from /proc where available, else the peak RSS."""
    try:
        with open("/proc/self/statm") as f:
            pages = int(f.read().split()[1])
        return pages * os.sysconf("SC_PAGE_SIZE")
    except (OSError, ValueError, IndexError):
        peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
        # ru_maxrss is bytes on macOS, kilobytes elsewhere
        return peak if sys.platform == "darwin" else peak * 1024


@router.get("/info")
async def info():
    return {
        "args": sys.argv,
        "platform": sys.platform,
        "python_version": platform.python_version(),
        "rss_bytes": resident_memory_bytes(),
        "executable": sys.executable,
        "pid": os.getpid(),
        "project_dir": Path.cwd().name,
    }
