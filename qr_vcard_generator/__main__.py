import sys

from qr_vcard_generator.cli import main

sys.exit(main())
