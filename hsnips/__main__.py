from sys import exit

from .snippets.main import main

exit(main())
