import sys

from disk_slice.main import main

if __name__ == "__main__":
    sys.exit(main())
