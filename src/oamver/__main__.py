from oamver.application import Application


def _entry_main() -> None:
    Application().run()


if __name__ == "__main__":
    _entry_main()
