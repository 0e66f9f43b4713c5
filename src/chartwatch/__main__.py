# ABOUTME: Allows running the job with `python -m chartwatch`
# ABOUTME: Delegates to chartwatch.main.main

from chartwatch.main import main

main()
