# Raw-Pad is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

import sys

from raw_pad.editor import main

if __name__ == "__main__":
    sys.exit(main())
