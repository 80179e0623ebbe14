from helpsync.run import main

if __name__ == "__main__":
    # Equivalent to ``python -m helpsync.run``; kept at the root for process
    # managers that expect a top-level script.
    raise SystemExit(main())
