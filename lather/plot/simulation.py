"""
Plotting of simulation output.

Functions:
- set_plot_style(mode: PlotModes) -> None:
    Sets the plot style.

- plot_time_series(records: list[SimulationRecord]) -> tuple[plt.Figure, np.ndarray]:
    Relative flux and radial velocity as function of time.

- plot_disk(driver: SimulationDriver, time: float) -> tuple[plt.Figure, plt.Axes]:
    Image of the stellar disk at given time.
"""

#%% Importing libraries
from enum import Enum

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns


#%%
class PlotModes(Enum):
    """
    Possible plot modes.

        WHITEMODE_NORMAL
            Suitable for papers.
        DARKMODE_NORMAL
            Suitable for dark-mode context.
        WHITEMODE_PRESENTATION
            Suitable for presentations.
    """
    WHITEMODE_NORMAL = 'whitemode_normal'
    DARKMODE_NORMAL = 'darkmode_normal'
    WHITEMODE_PRESENTATION = 'whitemode_presentation'


def set_plot_style(mode: PlotModes = PlotModes.WHITEMODE_NORMAL) -> None:
    """
    Set the style of the plots.

    Parameters
    ----------
    mode : PlotModes, optional
        Plot mode, by default PlotModes.WHITEMODE_NORMAL.
    """
    match mode:
        case PlotModes.WHITEMODE_NORMAL:
            sns.set_theme(context= 'paper', style= 'ticks')
        case PlotModes.DARKMODE_NORMAL:
            plt.style.use('dark_background')
            sns.set_context('paper')
        case PlotModes.WHITEMODE_PRESENTATION:
            sns.set_theme(context= 'talk', style= 'ticks')


def plot_time_series(records,
                     color: str = 'darkblue') -> tuple[plt.Figure, np.ndarray]:
    """
    Plot relative flux and radial velocity against time.

    Invalid samples are skipped.

    Parameters
    ----------
    records : list[SimulationRecord]
        Output of SimulationDriver.run.
    color : str, optional
        Color of the lines, by default 'darkblue'.

    Returns
    -------
    fig : plt.Figure
        Figure with the plot.
    axs : np.ndarray
        Artists of the flux (top) and radial velocity (bottom) panels.
    """
    valid = [record for record in records if record.valid]
    time = np.asarray([record.time for record in valid])
    flux = np.asarray([record.relative_flux for record in valid])
    radial_velocity = np.asarray([record.radial_velocity for record in valid])

    fig, axs = plt.subplots(2, sharex= True)
    axs[0].plot(time, flux, color= color)
    axs[0].set_ylabel('Relative flux')
    axs[1].plot(time, radial_velocity, color= color)
    if valid:
        floor = valid[0].rv_floor
        axs[1].fill_between(time, -floor, floor, color= 'gray', alpha= 0.2, linewidth= 0)
    axs[1].set_ylabel('RV [m/s]')
    axs[1].set_xlabel('Time [d]')
    sns.despine(fig= fig)
    return fig, axs


def plot_disk(driver,
              time: float,
              size: int = 200,
              cmap: str = 'afmhot') -> tuple[plt.Figure, plt.Axes]:
    """
    Plot the stellar disk as seen by the observer.

    Parameters
    ----------
    driver : SimulationDriver
        Simulation to draw.
    time : float
        Time [d].
    size : int, optional
        Number of pixels along each axis, by default 200.
    cmap : str, optional
        Colormap, by default 'afmhot'.

    Returns
    -------
    fig : plt.Figure
        Figure with the plot.
    ax : plt.Axes
        Artist with the image.
    """
    image = driver.integrator.render(time, size= size)
    fig, ax = plt.subplots(1)
    ax.imshow(image, cmap= cmap, extent= (-1, 1, -1, 1), vmin= 0, vmax= 1, origin= 'upper')
    ax.set_aspect('equal')
    ax.set_axis_off()
    ax.set_title(f't = {time:.2f} d')
    return fig, ax
