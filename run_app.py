import uvicorn


def main() -> None:
    """Run the ipstack lookup service with uvicorn."""
    uvicorn.run(
        "ipstack_lookup.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )


if __name__ == "__main__":
    main()
