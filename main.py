from app.plates.cli import main

if __name__ == "__main__":
    # Paths, pacing and browser backend default to the PLATES_* environment
    # variables; see app/plates/config.py.
    raise SystemExit(main())
