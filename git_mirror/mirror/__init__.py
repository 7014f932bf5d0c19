"""
Mirror Engine — Clone-or-update workers and the run orchestrator.

    from git_mirror.mirror.manager import MirrorManager

    result = MirrorManager(provider, options).run()
    sys.exit(result.exit_code)
"""
