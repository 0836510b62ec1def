from reaper.app import main

raise SystemExit(main())
