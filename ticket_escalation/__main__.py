import sys

from ticket_escalation.main import main

sys.exit(main())
