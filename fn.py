import sys
from typing import List, Optional

from fnlang.fn_runtime import ScriptRunner
from fnlang.fn_printer import Printer


def run_script_files(paths: List[str]):
    """Run fn source files as one program and exit with appropriate status."""
    runner = ScriptRunner()
    printer = Printer()
    result = runner.run_files(paths)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)
    # Bindings from the prelude and the primitives are not part of the answer
    print(printer.pformat_stack(result.value, definitions=False))


def main(argv: Optional[List[str]] = None):
    """Reduce the files named on the command line, in order."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("usage: fn FILE...", file=sys.stderr)
        raise SystemExit(2)
    run_script_files(args)


if __name__ == "__main__":
    main()
