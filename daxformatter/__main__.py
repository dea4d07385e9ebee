from daxformatter.cli import main

raise SystemExit(main())
