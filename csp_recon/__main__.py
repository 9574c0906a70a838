import sys

from csp_recon import main

sys.exit(main.main())
