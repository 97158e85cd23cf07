"""Process startup/teardown and the console entry point."""
