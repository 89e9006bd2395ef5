"""Tour of gogplot on synthetic child speech data.

Builds a tidy Table, summarizes it with group_aggregate, reshapes formants to
long form, and writes a few plots as standalone HTML files.

Usage:
    python examples/formant_tour.py [output_dir]
"""

import sys
from pathlib import Path

import numpy as np

from gogplot import Table, aes, facet_wrap, geom_bar, geom_boxplot, geom_jitter, geom_point, geom_smooth
from gogplot import labs, new_plot, scale_color_manual, scene_to_figure, theme
from gogplot.plot import geom_density
from gogplot.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def make_speakers(n: int = 120, seed: int = 1) -> Table:
    """Synthetic speakers: vocal tract length grows with age, formants fall with it."""
    rng = np.random.default_rng(seed)
    ages = rng.integers(3, 12, n)
    genders = rng.choice(["F", "M"], n)
    vtl = 9.0 + 0.45 * ages + np.where(genders == "M", 0.3, 0.0) + rng.normal(0, 0.4, n)
    f1 = 17500 / (4 * vtl) * 2.2 + rng.normal(0, 40, n)
    f2 = 3 * 17500 / (4 * vtl) * 1.6 + rng.normal(0, 90, n)
    records = [
        {"speaker": f"s{i + 1:03d}", "age": int(a), "gender": str(g), "vtl": float(v), "F1": float(x), "F2": float(y)}
        for i, (a, g, v, x, y) in enumerate(zip(ages, genders, vtl, f1, f2))
    ]
    return Table.from_records(records)


def main() -> None:
    configure_logging(level="INFO")
    out_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(".")
    out_dir.mkdir(parents=True, exist_ok=True)

    speakers = make_speakers()
    summary = speakers.group_aggregate(
        ["age", "gender"],
        {"n": (None, "count"), "mean_vtl": ("vtl", "mean"), "sd_vtl": ("vtl", "std")},
    )
    logger.info("summary:\n%s", summary.to_pandas().to_string(index=False))

    sex_colors = scale_color_manual({"F": "#D55E00", "M": "#0072B2"})
    plots = {
        "vtl_by_age": (
            new_plot(speakers, aes(x="age", y="vtl", color="gender"))
            + geom_jitter(width=0.2, seed=3, alpha=0.6)
            + geom_smooth(method="lm")
            + sex_colors
            + labs(title="Vocal tract length", x="Age (years)", y="VTL (cm)", color="Sex")
        ),
        "counts": (
            new_plot(speakers, aes(x="age", fill="gender"))
            + geom_bar(position="dodge")
            + labs(title="Speakers per age")
        ),
        "vtl_box": (
            new_plot(speakers, aes(x="gender", y="vtl"))
            + geom_boxplot()
            + theme(legend_position="none")
        ),
    }

    long = speakers.select(["speaker", "gender", "F1", "F2"]).gather_longer(
        ["speaker", "gender"], ["F1", "F2"], "formant", "hz"
    )
    plots["formant_density"] = (
        new_plot(long, aes(x="hz", fill="gender"))
        + geom_density(alpha=0.4)
        + facet_wrap("formant", scales="free")
        + labs(title="Formant distributions", x="Frequency (Hz)")
    )
    plots["vowel_space"] = (
        new_plot(speakers, aes(x="F2", y="F1", color="gender"))
        + geom_point()
        + facet_wrap("gender")
        + sex_colors
    )

    for name, spec in plots.items():
        path = out_dir / f"{name}.html"
        scene_to_figure(spec.render()).write_html(str(path))
        logger.info("wrote %s", path)


if __name__ == "__main__":
    main()
