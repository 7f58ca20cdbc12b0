import inspect
import importlib
from pathlib import Path

MODULES = [
    "geozonal.crs",
    "geozonal.models.geometry",
    "geozonal.models.grid",
    "geozonal.compute.predicates",
    "geozonal.compute.join",
    "geozonal.compute.zonal",
    "geozonal.compute.table",
    "geozonal.io.readers",
    "geozonal.plot",
]

ROOT = Path(__file__).resolve().parent.parent  # volta para raiz do projeto
OUTPUT_DIR = ROOT / "docs" / "api"


def doc_for_module(module_name):
    module = importlib.import_module(module_name)
    out = [f"# {module_name}", ""]
    out.append(inspect.getdoc(module) or "*Sem docstring.*")
    out.append("")

    for name, obj in inspect.getmembers(module):
        # só o que é definido no próprio módulo
        if getattr(obj, "__module__", None) != module_name:
            continue

        if inspect.isclass(obj):
            out.append(f"## Class {name}")
            out.append("")
            out.append(inspect.getdoc(obj) or "*Sem docstring.*")
            out.append("")

            for method_name, method in inspect.getmembers(obj, inspect.isfunction):
                if method_name.startswith("_"):
                    continue
                out.append(f"### Method {name}.{method_name}")
                out.append("")
                out.append("```python")
                out.append(f"{name}.{method_name}{inspect.signature(method)}")
                out.append("```")
                out.append("")
                out.append(inspect.getdoc(method) or "*Sem docstring.*")
                out.append("")

        elif inspect.isfunction(obj) and not name.startswith("_"):
            out.append(f"## Function {name}")
            out.append("")
            out.append("```python")
            out.append(f"{name}{inspect.signature(obj)}")
            out.append("```")
            out.append("")
            out.append(inspect.getdoc(obj) or "*Sem docstring.*")
            out.append("")

    return "\n".join(out)


if __name__ == "__main__":
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    for m in MODULES:
        md = doc_for_module(m)
        fname = m.replace(".", "_") + ".md"
        (OUTPUT_DIR / fname).write_text(md, encoding="utf-8")
        print(f"[OK] gerado: docs/api/{fname}")
