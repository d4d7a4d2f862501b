"""
Visualization of Tracer Stirring by Layered Turbulence.

Frames show the tracer concentration in one layer with the
streamfunction of that layer overlaid as contours: solid for
positive values, dashed for negative. Streamfunctions are normalized
frame by frame to a maximum of amplitude/5 so the contours stay
comparable as the flow evolves.
"""

import io
import warnings
import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from pathlib import Path
from typing import Dict, Any, Optional, Sequence

from PIL import Image
from tqdm import tqdm


class Animator:
    """
    Render snapshot series to a summary figure and an animated GIF.

    Attributes:
        fps: Frames per second of animations
        dpi: Resolution of static figures
    """

    COLOR_BG = '#0A1628'
    COLOR_BG_LIGHTER = '#0F1D32'
    COLOR_BG_PANEL = '#152238'
    COLOR_ACCENT_CYAN = '#00F5FF'
    COLOR_GRID = '#1A3A5C'
    COLOR_TEXT = '#C8D4E3'
    COLOR_TITLE = '#FFFFFF'
    COLOR_CONTOUR = '#9A9A9A'

    CMAP = 'RdBu_r'

    def __init__(self, fps: int = 18, dpi: int = 150):
        """
        Initialize animator.

        Args:
            fps: Frames per second for animations
            dpi: Resolution for output images
        """
        self.fps = fps
        self.dpi = dpi
        self._setup_style()

    def _setup_style(self):
        """Setup matplotlib dark theme."""
        plt.style.use('dark_background')
        plt.rcParams.update({
            'figure.facecolor': self.COLOR_BG,
            'axes.facecolor': self.COLOR_BG_LIGHTER,
            'axes.edgecolor': self.COLOR_GRID,
            'axes.labelcolor': self.COLOR_TEXT,
            'axes.titlecolor': self.COLOR_TITLE,
            'xtick.color': self.COLOR_TEXT,
            'ytick.color': self.COLOR_TEXT,
            'text.color': self.COLOR_TEXT,
            'grid.color': self.COLOR_GRID,
            'grid.alpha': 0.3,
            'font.family': 'sans-serif',
            'font.size': 11,
            'axes.labelsize': 12,
            'axes.titlesize': 14,
            'mathtext.fontset': 'cm',
        })

    @staticmethod
    def normalize_streamfunction(psi: np.ndarray, amplitude: float) -> np.ndarray:
        """Scale psi so that max|psi| = amplitude/5 (zero fields unchanged)."""
        peak = np.max(np.abs(psi))
        if peak == 0:
            return psi.copy()
        return psi * (amplitude / 5) / peak

    def _draw_layer(
        self,
        ax,
        x: np.ndarray,
        y: np.ndarray,
        c: np.ndarray,
        psi: Optional[np.ndarray],
        amplitude: float
    ):
        """Concentration heatmap with streamfunction contours."""
        limit = amplitude / 5
        im = ax.pcolormesh(
            x, y, c.T,
            cmap=self.CMAP, vmin=-limit, vmax=limit, shading='auto'
        )

        if psi is not None:
            psi = self.normalize_streamfunction(psi, amplitude)
            with warnings.catch_warnings():
                # constant fields have no contour levels
                warnings.simplefilter('ignore', UserWarning)
                ax.contour(
                    x, y, psi.T, levels=np.arange(0.15, 1.51, 0.3),
                    colors=self.COLOR_CONTOUR, linestyles='solid',
                    linewidths=0.8, alpha=0.5
                )
                ax.contour(
                    x, y, psi.T, levels=np.arange(-1.35, 0.0, 0.3),
                    colors=self.COLOR_CONTOUR, linestyles='dashed',
                    linewidths=0.8, alpha=0.5
                )

        ax.set_xlim(x[0], x[-1])
        ax.set_ylim(y[0], y[-1])
        ax.set_xlabel('$x$', fontweight='bold')
        ax.set_ylabel('$y$', fontweight='bold')
        ax.set_aspect('equal')
        return im

    def create_animation(
        self,
        snapshots: Sequence,
        metadata: Dict[str, Any],
        filepath: str,
        layer: int = 2,
        amplitude: float = 10.0,
        n_frames: Optional[int] = None,
        verbose: bool = True
    ):
        """
        Create animated GIF of the tracer in one layer.

        Args:
            snapshots: Snapshots ordered by step
            metadata: Output of read_metadata (needs 'x', 'y')
            filepath: Output file path
            layer: Layer to show (1 = top)
            amplitude: Initial tracer amplitude, sets the colour range
            n_frames: Number of frames (None = every snapshot)
            verbose: Print progress
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        n_outputs = len(snapshots)
        if n_outputs == 0:
            raise ValueError("No snapshots to animate")

        nlayers = snapshots[0]['concentration'].shape[0]
        if not 1 <= layer <= nlayers:
            raise ValueError(f"layer must be in 1..{nlayers}, got {layer}")

        if n_frames is None or n_frames > n_outputs:
            n_frames = n_outputs
        frame_indices = np.linspace(0, n_outputs - 1, n_frames, dtype=int)

        x, y = metadata['x'], metadata['y']
        frames = []

        if verbose:
            print(f"      Generating {n_frames} frames...")

        for idx in tqdm(frame_indices, desc="      Rendering", ncols=70,
                        disable=not verbose):
            snapshot = snapshots[idx]
            fig = plt.figure(figsize=(7, 7), facecolor=self.COLOR_BG, dpi=100)
            ax = fig.add_subplot(111, facecolor=self.COLOR_BG_LIGHTER)

            psi = snapshot.fields.get('streamfunction')
            self._draw_layer(
                ax, x, y,
                snapshot['concentration'][layer - 1],
                psi[layer - 1] if psi is not None else None,
                amplitude
            )
            ax.set_title(
                f'concentration, t = {snapshot.t:.2f}',
                fontsize=14, fontweight='bold', color=self.COLOR_TITLE
            )

            fig.tight_layout()

            buf = io.BytesIO()
            fig.savefig(buf, format='png', dpi=100,
                        facecolor=self.COLOR_BG, edgecolor='none')
            buf.seek(0)
            frames.append(Image.open(buf).copy())
            buf.close()
            plt.close(fig)

        frame_duration_ms = int(1000 / self.fps)

        frames[0].save(
            str(filepath),
            save_all=True,
            append_images=frames[1:],
            duration=frame_duration_ms,
            loop=0,
            optimize=True
        )

        if verbose:
            print(f"      ✓ Saved: {filepath.name}")

    def create_static_plot(
        self,
        snapshots: Sequence,
        metadata: Dict[str, Any],
        filepath: str,
        timeseries: Sequence[Dict[str, float]],
        layer: int = 2,
        amplitude: float = 10.0,
        diagnostics: Optional[Dict[str, Any]] = None
    ):
        """
        Create a summary figure.

        Layout: 2×2 panels
        - Row 1: Initial and final concentration with streamlines
        - Row 2: Normalized tracer variance, run summary

        Args:
            snapshots: Snapshots ordered by step
            metadata: Output of read_metadata
            filepath: Output file path
            timeseries: Output of compute_diagnostics_timeseries
            layer: Layer to show (1 = top)
            amplitude: Initial tracer amplitude
            diagnostics: Optional summary diagnostics
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        x, y = metadata['x'], metadata['y']

        fig = plt.figure(figsize=(14, 12), facecolor=self.COLOR_BG)
        fig.suptitle(
            f"{metadata.get('scenario_name', 'Tracer stirring')} (layer {layer})",
            fontsize=16, fontweight='bold', color=self.COLOR_TITLE, y=0.98
        )

        for panel, snapshot in ((221, snapshots[0]), (222, snapshots[-1])):
            ax = fig.add_subplot(panel, facecolor=self.COLOR_BG_LIGHTER)
            psi = snapshot.fields.get('streamfunction')
            im = self._draw_layer(
                ax, x, y,
                snapshot['concentration'][layer - 1],
                psi[layer - 1] if psi is not None else None,
                amplitude
            )
            ax.set_title(f'$t$ = {snapshot.t:.2f}', fontweight='bold')
            cbar = plt.colorbar(im, ax=ax, pad=0.02, shrink=0.8)
            cbar.set_label('concentration')

        # ====== Variance decay ======
        ax3 = fig.add_subplot(223, facecolor=self.COLOR_BG_LIGHTER)
        t = np.array([row['t'] for row in timeseries])
        key = f'tracer_variance_layer{layer}'
        variance = np.array([row[key] for row in timeseries])
        if variance[0] > 0:
            variance = variance / variance[0]

        ax3.plot(t, variance, color=self.COLOR_ACCENT_CYAN, lw=2)
        ax3.fill_between(t, 0, variance, color=self.COLOR_ACCENT_CYAN, alpha=0.2)
        ax3.set_xlabel('$t$', fontweight='bold')
        ax3.set_ylabel('$\\sigma^2(t)/\\sigma^2(0)$', fontweight='bold')
        ax3.set_title('Tracer Variance', fontweight='bold')
        ax3.set_ylim(0, 1.1)
        ax3.grid(True, alpha=0.3)

        # ====== Summary ======
        ax4 = fig.add_subplot(224, facecolor=self.COLOR_BG_LIGHTER)
        ax4.axis('off')

        info_lines = ["RUN PARAMETERS", "─" * 35]
        for name in ('nlayers', 'nx', 'dt', 'kappa', 'beta', 'mu',
                     'tracer_release_time'):
            if name in metadata:
                info_lines.append(f"{name}: {metadata[name]}")
        if diagnostics:
            info_lines += ["", "DIAGNOSTICS", "─" * 35]
            info_lines.append(
                f"Mass error: {diagnostics.get('mass_error_relative', 0):.2e}")
            info_lines.append(
                f"Variance ratio: {diagnostics.get('variance_ratio', 1):.4f}")

        ax4.text(
            0.1, 0.95, "\n".join(info_lines),
            transform=ax4.transAxes,
            fontsize=11, fontfamily='monospace',
            color=self.COLOR_TEXT,
            verticalalignment='top',
            bbox=dict(
                boxstyle='round,pad=0.5',
                facecolor=self.COLOR_BG_PANEL,
                edgecolor=self.COLOR_GRID,
                alpha=0.9
            )
        )

        plt.tight_layout(rect=[0, 0, 1, 0.95])
        plt.savefig(
            filepath, dpi=self.dpi,
            facecolor=self.COLOR_BG, edgecolor='none',
            bbox_inches='tight'
        )
        plt.close(fig)
