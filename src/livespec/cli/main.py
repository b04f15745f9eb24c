import os

import uvicorn


def main():
    uvicorn.run(
        "livespec.main:app",
        host=os.getenv("LIVESPEC_HOST", "127.0.0.1"),
        port=int(os.getenv("LIVESPEC_PORT", "8000")),
        reload=os.getenv("LIVESPEC_RELOAD", "false").lower() == "true",
    )


if __name__ == "__main__":
    main()
